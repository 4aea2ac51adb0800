from __future__ import annotations

SERVICE_NAME = "CareBridge"


def render_welcome_message() -> str:
    return (
        f"Welcome to {SERVICE_NAME}! We're here to support you. "
        "Reply YES to begin registration and get started."
    )


def render_confirmation_message() -> str:
    return (
        "Thank you! Your registration is confirmed. "
        "We'll be in touch soon to help you get started."
    )
