"""
Console email sender adapter - Implements Notifier protocol.

This module provides a console-based implementation of the domain's
notifier port, logging confirmation links to stdout for demo purposes.
"""

import logging
import re

logger = logging.getLogger(__name__)

_LINK_PATTERN = re.compile(r'href="([^"]+)"')


class ConsoleEmailSender:
    """
    Implements Notifier protocol via console logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    For demo/development purposes - prints confirmation links to stdout.
    """

    def send(self, to_email: str, message: str) -> None:
        """
        Log the confirmation link to console (simulates email delivery).

        In production, this would be replaced with an SMTP adapter.
        The link is logged at INFO level to be visible in docker-compose logs;
        the full HTML body is only logged at DEBUG.

        Args:
            to_email: Recipient email address
            message: Rendered HTML body
        """
        match = _LINK_PATTERN.search(message)
        link = match.group(1) if match else "<none>"
        logger.info("[CONFIRMATION] Email: %s Link: %s", to_email, link)
        logger.debug("[CONFIRMATION] Body for %s:\n%s", to_email, message)
