from __future__ import annotations

import logging
import re

import requests

from cropguard.core.response import ResponseBuilder
from cropguard.core.schemas import Diagnosis, FarmProfile, NotificationResult


logger = logging.getLogger(__name__)

TWILIO_MESSAGES_URL = "https://api.twilio.com/2010-04-01/Accounts/{sid}/Messages.json"


def normalize_destination(raw: str, country_code: str, trunk_prefix: str = "0") -> str:
    """
    Rewrite a phone number into +<country><number> form.

    "+44 20 7946" stays international, "0044..." becomes "+44...", a
    leading trunk prefix is replaced by the default country code and any
    other bare number gets the country code prepended.
    """
    if raw is None:
        raise ValueError("Phone number is required")

    number = re.sub(r"[\s\-().]", "", raw)
    if not number:
        raise ValueError("Phone number is required")

    code = country_code.lstrip("+")
    if number.startswith("+"):
        digits = number[1:]
    elif number.startswith("00"):
        digits = number[2:]
    elif trunk_prefix and number.startswith(trunk_prefix):
        digits = code + number[len(trunk_prefix):]
    else:
        digits = code + number

    if not digits.isdigit() or not 8 <= len(digits) <= 15:
        raise ValueError(f"Invalid phone number: {raw!r}")
    return "+" + digits


class NotificationService:
    """WhatsApp disease alerts over the Twilio REST API. Failures never propagate."""

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        from_number: str,
        country_code: str,
        timeout: float = 10.0,
        response_builder: ResponseBuilder | None = None,
    ):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number
        self.country_code = country_code
        self.timeout = timeout
        self.response_builder = response_builder or ResponseBuilder()

    @property
    def configured(self) -> bool:
        return bool(self.account_sid and self.auth_token)

    def send_disease_alert(self, destination: str, diagnosis: Diagnosis, farm: FarmProfile) -> NotificationResult:
        try:
            to_number = normalize_destination(destination, self.country_code)
        except ValueError as exc:
            logger.warning("Notification skipped: %s", exc)
            return NotificationResult(sent=False, destination=destination, error=str(exc))

        if not self.configured:
            logger.warning("Twilio credentials not set; notification to %s not sent", to_number)
            return NotificationResult(sent=False, destination=to_number, error="notifications not configured")

        body = self.response_builder.build_disease_alert(diagnosis, farm)
        try:
            response = requests.post(
                TWILIO_MESSAGES_URL.format(sid=self.account_sid),
                data={
                    "From": f"whatsapp:{self.from_number}",
                    "To": f"whatsapp:{to_number}",
                    "Body": body,
                },
                auth=(self.account_sid, self.auth_token),
                timeout=self.timeout,
            )
            response.raise_for_status()
            message_id = response.json().get("sid")
        except Exception as exc:
            logger.warning("WhatsApp notification to %s failed: %s", to_number, exc)
            return NotificationResult(sent=False, destination=to_number, error=str(exc))

        logger.info("WhatsApp notification sent: %s", message_id)
        return NotificationResult(sent=True, destination=to_number, message_id=message_id)
