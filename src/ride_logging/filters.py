"""Log filters for PII and verification-code masking."""

import logging
import re


class PIIFilter(logging.Filter):
    """Masks PII (emails, phone numbers) and ride verification codes in log messages."""

    EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9_.+-]+@[a-zA-Z0-9-]+\.[a-zA-Z0-9-.]+")
    PHONE_PATTERN = re.compile(r"(?:\+91[-\s]?)?\b\d{3}[-.\s]?\d{3}[-.\s]?\d{4}\b")
    CODE_PATTERN = re.compile(
        r"\b((?:start_|end_)?(?:code|otp))(\s*[=:]\s*)(\d{4,6})\b", re.IGNORECASE
    )

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            msg = record.msg
            if "@" in msg:
                msg = self.EMAIL_PATTERN.sub("[EMAIL]", msg)
            if any(c.isdigit() for c in msg):
                msg = self.CODE_PATTERN.sub(r"\1\2[CODE]", msg)
                msg = self.PHONE_PATTERN.sub("[PHONE]", msg)
            record.msg = msg
        return True
