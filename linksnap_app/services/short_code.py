"""
Random short code generation for the local backend's generate_short_code().
"""

import secrets
import string
from sqlalchemy.orm import Session
from linksnap_app.exceptions import BackendError
from linksnap_app.models.url import ShortURL


class RandomShortCodeGenerator:
    """
    Generates a random string and checks the urls table for uniqueness.

    The check and the later insert are not atomic; the unique constraint on
    ``urls.short_code`` rejects the rare collision that slips through.
    """

    CHARACTERS = string.ascii_letters + string.digits

    def __init__(self, length: int = 6, max_retries: int = 5):
        if not 3 <= length <= 20:
            raise ValueError(f"Short code length must be between 3 and 20, got {length}")
        self.length = length
        self.max_retries = max_retries

    def generate(self, db_session: Session) -> str:
        """Return a code that is not used by any row right now"""
        for _ in range(self.max_retries):
            short_code = self._random_string()
            taken = db_session.query(ShortURL.id).filter(ShortURL.short_code == short_code).first()
            if not taken:
                return short_code

        raise BackendError(
            f"Could not generate unique short code after {self.max_retries} attempts",
            code="P0001",
        )

    def _random_string(self) -> str:
        return ''.join(secrets.choice(self.CHARACTERS) for _ in range(self.length))
