"""
Persistent storage for the bearer token and the last known role tag.

Both entries are always written and cleared together. Two backends exist:
SQLiteCredentialStore keeps them in a local key/value table, and
BrowserCredentialStore keeps them in the visitor's cookie and localStorage
so a page reload can restore the session.
"""

import json
import logging
import sqlite3
from typing import Optional
from urllib.parse import unquote

import streamlit as st
import streamlit.components.v1 as components

log = logging.getLogger(__name__)

TOKEN_KEY = "TOKEN"
ROLE_KEY = "ROLE"
MAX_AGE_SECONDS = 2592000  # 30 days


class CredentialStoreError(Exception):
    pass


class SQLiteCredentialStore:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def _conn(self):
        conn = sqlite3.connect(self.db_path)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS credentials (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            )
        """)
        return conn

    def _read(self, key: str) -> Optional[str]:
        try:
            with self._conn() as conn:
                row = conn.execute("SELECT value FROM credentials WHERE key = ?", (key,)).fetchone()
        except sqlite3.Error as e:
            raise CredentialStoreError(f"Failed to read {key}: {e}") from e
        return row[0] if row else None

    def read_token(self) -> Optional[str]:
        return self._read(TOKEN_KEY)

    def read_role(self) -> Optional[str]:
        return self._read(ROLE_KEY)

    def write(self, token: str, role: Optional[str]) -> None:
        try:
            with self._conn() as conn:
                conn.execute(
                    "INSERT OR REPLACE INTO credentials (key, value) VALUES (?, ?)",
                    (TOKEN_KEY, token),
                )
                if role:
                    conn.execute(
                        "INSERT OR REPLACE INTO credentials (key, value) VALUES (?, ?)",
                        (ROLE_KEY, role),
                    )
                else:
                    conn.execute("DELETE FROM credentials WHERE key = ?", (ROLE_KEY,))
                conn.commit()
        except sqlite3.Error as e:
            raise CredentialStoreError(f"Failed to persist credentials: {e}") from e

    def clear(self) -> None:
        try:
            with self._conn() as conn:
                conn.execute("DELETE FROM credentials WHERE key IN (?, ?)", (TOKEN_KEY, ROLE_KEY))
                conn.commit()
        except sqlite3.Error as e:
            raise CredentialStoreError(f"Failed to clear credentials: {e}") from e


class BrowserCredentialStore:
    """Cookie + localStorage backend.

    Reads come from the cookies Streamlit received with the page request;
    writes are injected as a small script, so they only take effect in the
    browser and cannot report failures back.
    """

    def __init__(self, cookie_name: str = "advisory_auth_token"):
        self.cookie_name = cookie_name
        self.role_cookie_name = f"{cookie_name}_role"

    def _cookie(self, name: str) -> Optional[str]:
        try:
            raw = st.context.cookies.get(name)
        except Exception as e:
            # st.context is unavailable outside a script run
            raise CredentialStoreError(f"Browser cookies unavailable: {e}") from e
        return unquote(raw) if raw else None

    def read_token(self) -> Optional[str]:
        return self._cookie(self.cookie_name)

    def read_role(self) -> Optional[str]:
        return self._cookie(self.role_cookie_name)

    def _inject(self, script: str) -> None:
        try:
            components.html(f"<script>{script}</script>", height=0)
        except Exception as e:
            raise CredentialStoreError(f"Failed to update browser storage: {e}") from e

    def write(self, token: str, role: Optional[str]) -> None:
        entries = {self.cookie_name: token, self.role_cookie_name: role or ""}
        self._inject(
            f"""
            (function () {{
              const entries = {json.dumps(entries)};
              for (const [name, value] of Object.entries(entries)) {{
                const cookie = name + "=" + encodeURIComponent(value) + "; path=/; max-age={MAX_AGE_SECONDS}; SameSite=Lax";
                document.cookie = cookie;
                try {{ window.parent.document.cookie = cookie; }} catch (e) {{}}
                localStorage.setItem(name, value);
              }}
            }})();
            """
        )

    def recover(self) -> None:
        """Copy the pair back from localStorage into cookies if the browser dropped them.

        Reloads the page once per tab so the restored cookies reach the server.
        """
        names = [self.cookie_name, self.role_cookie_name]
        self._inject(
            f"""
            (function () {{
              try {{
                const names = {json.dumps(names)};
                const token = localStorage.getItem(names[0]);
                const attempted = sessionStorage.getItem(names[0] + "_recovery_attempted");
                const hasCookie = window.parent.document.cookie.split("; ").some((x) => x.trim().startsWith(names[0] + "="));
                if (token && !hasCookie && !attempted) {{
                  sessionStorage.setItem(names[0] + "_recovery_attempted", "1");
                  for (const name of names) {{
                    const cookie = name + "=" + encodeURIComponent(localStorage.getItem(name) || "") + "; path=/; max-age={MAX_AGE_SECONDS}; SameSite=Lax";
                    document.cookie = cookie;
                    try {{ window.parent.document.cookie = cookie; }} catch (e) {{}}
                  }}
                  window.parent.location.reload();
                }}
              }} catch (e) {{
                console.error("Session recovery failed", e);
              }}
            }})();
            """
        )

    def clear(self) -> None:
        names = [self.cookie_name, self.role_cookie_name]
        self._inject(
            f"""
            (function () {{
              for (const name of {json.dumps(names)}) {{
                const cookie = name + "=; path=/; max-age=0; SameSite=Lax";
                document.cookie = cookie;
                try {{ window.parent.document.cookie = cookie; }} catch (e) {{}}
                localStorage.removeItem(name);
              }}
            }})();
            """
        )
