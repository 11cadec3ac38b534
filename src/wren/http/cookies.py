"""Cookie parsing (request side) and SetCookie (response side)."""

from dataclasses import dataclass


def parse_cookies(header: str) -> dict[str, str]:
    """Parse a ``Cookie`` header into a name-value dict."""
    cookies: dict[str, str] = {}
    for pair in header.split(";"):
        name, sep, value = pair.strip().partition("=")
        if sep:
            cookies[name.strip()] = value.strip()
    return cookies


@dataclass(frozen=True, slots=True)
class SetCookie:
    """A ``Set-Cookie`` directive attached to a Response."""

    name: str
    value: str
    max_age: int | None = None
    path: str = "/"
    domain: str | None = None
    secure: bool = False
    httponly: bool = True
    samesite: str = "lax"

    def to_header_value(self) -> str:
        """Serialize to a ``Set-Cookie`` header value."""
        attrs = [
            f"{self.name}={self.value}",
            f"Max-Age={self.max_age}" if self.max_age is not None else "",
            f"Path={self.path}" if self.path else "",
            f"Domain={self.domain}" if self.domain else "",
            "Secure" if self.secure else "",
            "HttpOnly" if self.httponly else "",
            f"SameSite={self.samesite}" if self.samesite else "",
        ]
        return "; ".join(a for a in attrs if a)
