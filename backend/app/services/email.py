"""Invitation email delivery."""

import logging
from typing import Protocol

import httpx

from app.core.config import Settings

logger = logging.getLogger(__name__)


class EmailDeliveryError(Exception):
    """Raised when a message could not be handed to the mail provider."""


class EmailSender(Protocol):
    async def send_invite_email(self, email: str, token: str, inviter_name: str) -> None: ...


def build_invite_url(frontend_url: str, token: str) -> str:
    return f"{frontend_url.rstrip('/')}/register?token={token}"


def render_invite_html(invite_url: str, inviter_name: str, expire_days: int) -> str:
    return f"""
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <h2 style="color: #16a34a;">Welcome to Amantena Highway Farms!</h2>
  <p>Hello,</p>
  <p>{inviter_name} has invited you to join the Amantena Highway Farms business management system.</p>
  <p>Click the button below to accept your invitation and set up your account:</p>
  <div style="text-align: center; margin: 30px 0;">
    <a href="{invite_url}"
       style="background-color: #16a34a; color: white; padding: 12px 24px;
              text-decoration: none; border-radius: 6px; display: inline-block;">
      Accept Invitation
    </a>
  </div>
  <p>Or copy and paste this link into your browser:</p>
  <p style="word-break: break-all; color: #6b7280;">{invite_url}</p>
  <p><strong>Note:</strong> This invitation will expire in {expire_days} days.</p>
</div>
"""


class ConsoleEmailSender:
    """Development sender: logs the registration link instead of mailing it."""

    def __init__(self, settings: Settings):
        self.settings = settings

    async def send_invite_email(self, email: str, token: str, inviter_name: str) -> None:
        url = build_invite_url(self.settings.FRONTEND_URL, token)
        logger.info("Invite for %s from %s: %s", email, inviter_name, url)


class HttpEmailSender:
    """Posts messages to a transactional mail HTTP API."""

    def __init__(self, settings: Settings, client: httpx.AsyncClient | None = None):
        self.settings = settings
        self._client = client

    async def send_invite_email(self, email: str, token: str, inviter_name: str) -> None:
        url = build_invite_url(self.settings.FRONTEND_URL, token)
        message = {
            "from": self.settings.EMAIL_FROM,
            "to": [email],
            "subject": "Invitation to Join Amantena Highway Farms",
            "html": render_invite_html(url, inviter_name, self.settings.INVITE_EXPIRE_DAYS),
        }
        headers = {"Authorization": f"Bearer {self.settings.EMAIL_API_KEY}"}

        try:
            if self._client is not None:
                response = await self._client.post(
                    self.settings.EMAIL_API_URL, json=message, headers=headers
                )
            else:
                async with httpx.AsyncClient(timeout=self.settings.EMAIL_TIMEOUT_SECONDS) as client:
                    response = await client.post(
                        self.settings.EMAIL_API_URL, json=message, headers=headers
                    )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error("Failed to send invite email to %s: %s", email, exc)
            raise EmailDeliveryError(str(exc)) from exc

        logger.info("Invite email sent to %s", email)


def build_email_sender(settings: Settings) -> EmailSender:
    if settings.EMAIL_BACKEND == "http":
        return HttpEmailSender(settings)
    return ConsoleEmailSender(settings)
