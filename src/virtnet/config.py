"""
Runtime settings for the network reconciler.

Values come from keyword arguments or ``VIRTNET_*`` environment variables.
"""

import os
from typing import Optional

from pydantic import BaseModel, Field

from virtnet.polling import PollSettings


def conn_uri(user_session: bool = False) -> str:
    """Return the libvirt connection URI for the given session type."""
    return "qemu:///session" if user_session else "qemu:///system"


class ReconcilerSettings(BaseModel):
    """Connection URI and convergence timing."""

    uri: str = Field(default_factory=conn_uri, description="libvirt connection URI")
    poll_delay: float = Field(default=5.0, ge=0, description="Wait before the first check (s)")
    poll_interval: float = Field(default=3.0, gt=0, description="Wait between checks (s)")
    poll_timeout: float = Field(default=60.0, gt=0, description="Hard deadline (s)")

    @classmethod
    def from_env(cls, uri: Optional[str] = None, user_session: bool = False) -> "ReconcilerSettings":
        """Build settings, letting environment variables override defaults."""
        values = {"uri": uri or os.getenv("VIRTNET_URI") or conn_uri(user_session)}
        for field_name, env_name in (
            ("poll_delay", "VIRTNET_POLL_DELAY"),
            ("poll_interval", "VIRTNET_POLL_INTERVAL"),
            ("poll_timeout", "VIRTNET_POLL_TIMEOUT"),
        ):
            raw = os.getenv(env_name)
            if raw:
                values[field_name] = raw
        return cls.model_validate(values)

    def poll_settings(self) -> PollSettings:
        return PollSettings(
            delay=self.poll_delay,
            interval=self.poll_interval,
            timeout=self.poll_timeout,
        )
