from dataclasses import dataclass, field

from django.conf import settings

DEFAULT_BASE_URL = "https://api.razorpay.com"


@dataclass(frozen=True)
class GatewayConfig:
    """Razorpay credentials and transport limits, built once and injected."""

    key_id: str
    key_secret: str = field(repr=False)
    webhook_secret: str = field(default="", repr=False)
    base_url: str = DEFAULT_BASE_URL
    timeout: float = 15.0

    @property
    def is_configured(self) -> bool:
        return bool(self.key_id and self.key_secret)

    @classmethod
    def from_settings(cls, raw=None) -> "GatewayConfig":
        raw = raw if raw is not None else getattr(settings, "RAZORPAY", {})
        return cls(
            key_id=raw.get("KEY_ID") or "",
            key_secret=raw.get("KEY_SECRET") or "",
            webhook_secret=raw.get("WEBHOOK_SECRET") or "",
            base_url=(raw.get("BASE_URL") or DEFAULT_BASE_URL).rstrip("/"),
            timeout=float(raw.get("TIMEOUT") or 15.0),
        )
