import json
import logging
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from models import User

logger = logging.getLogger(__name__)


class TokenStore:
    """Bearer token and user of the current session, optionally kept on disk."""

    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = path
        self.token: Optional[str] = None
        self.user: Optional[User] = None
        self._load()

    def _load(self) -> None:
        if self.path is None or not self.path.exists():
            return
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            token = data.get("token")
            user = data.get("user")
            if token and user:
                self.token = token
                self.user = User.model_validate(user)
        except (OSError, ValueError, ValidationError) as exc:
            logger.warning(f"session_load_failed: path={self.path} error={exc}")
            self.token = None
            self.user = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.user and self.token)

    def save(self, token: str, user: User) -> None:
        self.token = token
        self.user = user
        if self.path is not None:
            payload = {"token": token, "user": user.model_dump(mode="json", by_alias=True)}
            self.path.write_text(json.dumps(payload), encoding="utf-8")

    def clear(self) -> None:
        self.token = None
        self.user = None
        if self.path is not None:
            self.path.unlink(missing_ok=True)
