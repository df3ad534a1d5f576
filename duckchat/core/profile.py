"""Endpoints, identity cookies and browser fingerprint for the chat service.

The header values were captured from a desktop browser session and drift
whenever the web frontend is redeployed. Pass a custom ClientProfile to
TokenProvider / ChatSession to override them.
"""

from dataclasses import dataclass, field

TOKEN_HEADER = "x-vqd-4"

_DEFAULT_COOKIES = (
    ("5", "1"),
    ("dcm", "3"),
    ("dcs", "1"),
    ("duckassist-opt-in-count", "1"),
    ("isRecentChatOn", "1"),
    ("preferredDuckAiModel", "3"),
)

_FE_SIGNALS = (
    "eyJzdGFydCI6MTc0OTgyODU3NzE1NiwiZXZlbnRzIjpbeyJuYW1lIjoic3RhcnROZXdDaGF0Ii"
    "wiZGVsdGEiOjYwfV0sImVuZCI6NTM4MX0="
)

_VQD_HASH = (
    "eyJzZXJ2ZXJfaGFzaGVzIjpbIm5oWlUrcVZ3d3dzODFPVStDTm4vVkZJcS9DbXBSeGxYY2E5cH"
    "pGQ0JVZUk9IiwiajRNNmNBRzRheVFqQ21kWkN0a1IzOFY3eVRpd1gvZ2RmcDFueFhEdlV3cz0i"
    "XSwiY2xpZW50X2hhc2hlcyI6WyJpRTNqeXRnSm0xZGJaZlo1bW81M1NmaVAxdXUxeEdzY0F5Rn"
    "B3V2NVOUtrPSIsInJaRGtaR2h4S0JEL1JuY00xVVNraHZNM3pLdEJzQmlzSlJTWFF4L2QzRFU9"
    "Il0sInNpZ25hbHMiOnt9LCJtZXRhIjp7InYiOiIzIiwiY2hhbGxlbmdlX2lkIjoiODU3NjA5Yj"
    "lmMTg2NThlMWM0MzZhZWI2MGM0MDc1ZjdhYWNmYmI0OTlhY2Y4NTVmNDJkNWRjZmM5MTViNDhi"
    "OGg4amJ0IiwidGltZXN0YW1wIjoiMTc0OTgyODU3NjQ5NyIsIm9yaWdpbiI6Imh0dHBzOi8vZH"
    "Vja2R1Y2tnby5jb20iLCJzdGFjayI6IkVycm9yXG5hdCBiYSAoaHR0cHM6Ly9kdWNrZHVja2dv"
    "LmNvbS9kaXN0L3dwbS5jaGF0LmNhZmQ3M2Y5N2Y1MWM5ODNlYjMwLmpzOjE6NzQ4MDMpXG5hdC"
    "Bhc3luYyBkaXNwYXRjaFNlcnZpY2VJbml0aWFsVlFEIChodHRwczovL2R1Y2tkdWNrZ28uY29t"
    "L2Rpc3Qvd3BtLmNoYXQuY2FmZDczZjk3ZjUxYzk4M2ViMzAuanM6MTo5OTUyOSkifX0="
)


@dataclass(frozen=True)
class ClientProfile:
    """Immutable request identity shared by the token probe and chat calls.

    Attributes:
        status_url: Token probe endpoint (GET).
        chat_url: Chat exchange endpoint (POST, event stream).
        cookies: Identity cookies sent on every request, as (name, value) pairs.
        user_agent: Browser user agent string.
        accept_language: Accept-Language header value.
        fe_signals: x-fe-signals header value.
        fe_version: x-fe-version header value.
        vqd_hash: x-vqd-hash-1 signed hash header value.
    """
    status_url: str = "https://duckduckgo.com/duckchat/v1/status"
    chat_url: str = "https://duckduckgo.com/duckchat/v1/chat"
    origin: str = "https://duckduckgo.com"
    cookies: tuple[tuple[str, str], ...] = _DEFAULT_COOKIES
    user_agent: str = (
        "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/137.0.0.0 Safari/537.36"
    )
    accept_language: str = "fr-FR,fr;q=0.6"
    sec_ch_ua: str = '"Brave";v="137", "Chromium";v="137", "Not/A)Brand";v="24"'
    sec_ch_ua_platform: str = '"Linux"'
    fe_signals: str = _FE_SIGNALS
    fe_version: str = "serp_20250613_094749_ET-cafd73f97f51c983eb30"
    vqd_hash: str = _VQD_HASH
    extra_headers: dict[str, str] = field(default_factory=dict, hash=False, compare=False)

    def cookie_header(self) -> str:
        return "; ".join(f"{name}={value}" for name, value in self.cookies)

    def fingerprint_headers(self) -> dict[str, str]:
        """Headers common to the status probe and the chat exchange."""
        headers = {
            "Accept-Language": self.accept_language,
            "DNT": "1",
            "Priority": "u=1, i",
            "Referer": f"{self.origin}/",
            "Sec-CH-UA": self.sec_ch_ua,
            "Sec-CH-UA-Mobile": "?0",
            "Sec-CH-UA-Platform": self.sec_ch_ua_platform,
            "Sec-Fetch-Dest": "empty",
            "Sec-Fetch-Mode": "cors",
            "Sec-Fetch-Site": "same-origin",
            "Sec-GPC": "1",
            "User-Agent": self.user_agent,
            "Cookie": self.cookie_header(),
        }
        headers.update(self.extra_headers)
        return headers

    def status_headers(self) -> dict[str, str]:
        headers = self.fingerprint_headers()
        headers.update({
            "Accept": "*/*",
            "Cache-Control": "no-store",
            "x-vqd-accept": "1",
        })
        return headers

    def chat_headers(self, token: str) -> dict[str, str]:
        headers = self.fingerprint_headers()
        headers.update({
            "Accept": "text/event-stream",
            "Content-Type": "application/json",
            "Origin": self.origin,
            "x-fe-signals": self.fe_signals,
            "x-fe-version": self.fe_version,
            TOKEN_HEADER: token,
            "x-vqd-hash-1": self.vqd_hash,
        })
        return headers


DEFAULT_PROFILE = ClientProfile()
