"""Short code generation utilities."""

import base64
import secrets
import string


class ShortCodeGenerator:
    """Generate random short codes for links.

    Codes are the URL-safe base64 encoding of a few bytes from the
    operating system's CSPRNG, with padding removed. The default of 3 bytes
    yields exactly 4 characters (24 bits, about 16.7M distinct codes).
    """

    # URL-safe base64 alphabet
    ALPHABET = string.ascii_letters + string.digits + "-_"

    def __init__(self, num_bytes: int = 3):
        """Initialize short code generator.

        Args:
            num_bytes: Random bytes per code; 3 bytes encode to 4 characters
        """
        if num_bytes < 1:
            raise ValueError("num_bytes must be positive")
        self.num_bytes = num_bytes

    @property
    def code_length(self) -> int:
        """Length of the codes produced by this generator."""
        return -(-self.num_bytes * 4 // 3)

    def generate(self) -> str:
        """Generate a random short code.

        Returns:
            Random URL-safe short code
        """
        raw = secrets.token_bytes(self.num_bytes)
        code = base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")
        return code[:self.code_length]

    @staticmethod
    def is_valid_format(code: str) -> bool:
        """Check if code only uses the URL-safe base64 alphabet.

        Args:
            code: Code to validate

        Returns:
            True if valid format
        """
        return bool(code) and all(c in ShortCodeGenerator.ALPHABET for c in code)
