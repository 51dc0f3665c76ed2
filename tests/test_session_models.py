from use_cases.session_models import (
    AuthResponse,
    FieldState,
    Membership,
    SignupPayload,
    UserProfile,
    active_plan_names,
    is_admin,
    is_member,
)


def test_is_admin() -> None:
    admin_user = UserProfile(name="Admin", email="admin@x.com", role="admin")
    regular_user = UserProfile(name="User", email="user@x.com", role="user")
    assert is_admin(admin_user) is True
    assert is_admin(regular_user) is False
    assert is_admin(None) is False
    assert is_admin(UserProfile(name="X", email="x@x.com", role="Admin")) is False


def test_is_member() -> None:
    assert is_member(UserProfile(name="User", email="user@x.com", role="user")) is True
    assert is_member(UserProfile(name="Admin", email="admin@x.com", role="admin")) is False
    assert is_member(None) is False


def test_active_plan_names_keeps_order() -> None:
    memberships = [
        Membership(id="1", plan_name="Gold", status="active"),
        Membership(id="2", plan_name="Silver", status="expired"),
        Membership(id="3", plan_name="Bronze", status="active"),
    ]
    assert active_plan_names(memberships) == ("Gold", "Bronze")
    assert active_plan_names([]) == ()


def test_membership_from_record() -> None:
    assert Membership.from_record({"_id": "a1", "planName": "Gold", "status": "active"}) == Membership(
        id="a1", plan_name="Gold", status="active"
    )
    assert Membership.from_record({"id": 7}).id == "7"


def test_secrets_stay_out_of_repr() -> None:
    res = AuthResponse(id="1", email="a@x.com", name="A", token="secret-token", role="user")
    payload = SignupPayload(name="A", email="a@x.com", password="secret-password")
    assert "secret-token" not in repr(res)
    assert "secret-password" not in repr(payload)
    assert payload.as_body()["password"] == "secret-password"
    assert res.to_profile() == UserProfile(name="A", email="a@x.com", role="user")


def test_field_state_failure_keeps_last_value() -> None:
    state = FieldState().pending()
    assert state.status == "pending"

    state = state.resolved(("Gold",))
    state = state.pending().failed("boom")
    assert state.status == "failed"
    assert state.error == "boom"
    assert state.value == ("Gold",)

    assert state.pending().error is None
