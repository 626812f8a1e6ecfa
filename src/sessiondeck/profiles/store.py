"""Profile store — saved connection profiles persisted as JSON."""

from __future__ import annotations

import json
import logging
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError, TypeAdapter
from pydantic.alias_generators import to_camel

from sessiondeck.pty.command import DEFAULT_SSH_PORT, RemoteTarget

logger = logging.getLogger(__name__)


class ProfileNotFound(KeyError):
    """No profile with the requested id."""

    def __init__(self, profile_id: str) -> None:
        super().__init__(profile_id)
        self.profile_id = profile_id

    def __str__(self) -> str:
        return f"Profile not found: {self.profile_id}"


class ServerProfile(BaseModel):
    """A saved remote host.

    Serialized with camelCase keys (``lastUsedAt``) so the file stays
    readable by the desktop UI.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    host: str
    user: str | None = None
    port: int | None = Field(default=DEFAULT_SSH_PORT, ge=0, le=65535)
    password: str | None = None
    tags: list[str] = Field(default_factory=list)
    favorite: bool = False
    last_used_at: datetime | None = None

    def to_target(self) -> RemoteTarget:
        return RemoteTarget(
            host=self.host,
            user=self.user,
            port=self.port if self.port is not None else DEFAULT_SSH_PORT,
            password=self.password,
        )


_PROFILE_LIST = TypeAdapter(list[ServerProfile])


class ProfileStore:
    """Ordered list of profiles backed by a JSON file.

    Every mutation rewrites the whole file. Reads never fail: a missing or
    unreadable file loads as an empty store.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._profiles: list[ServerProfile] = []
        self._lock = threading.Lock()

    def load(self) -> list[ServerProfile]:
        """(Re)load profiles from disk."""
        profiles: list[ServerProfile] = []
        try:
            profiles = _PROFILE_LIST.validate_json(self.path.read_bytes())
        except FileNotFoundError:
            logger.debug("No profile store at %s", self.path)
        except (OSError, ValidationError) as e:
            logger.warning("Ignoring unreadable profile store %s: %s", self.path, e)
        with self._lock:
            self._profiles = profiles
        logger.info("Loaded %d profiles from %s", len(profiles), self.path)
        return list(profiles)

    def list(self) -> list[ServerProfile]:
        with self._lock:
            return [p.model_copy() for p in self._profiles]

    def get(self, profile_id: str) -> ServerProfile:
        with self._lock:
            return self._find(profile_id).model_copy()

    def upsert(self, profile: ServerProfile) -> None:
        """Replace the profile with the same id, or append it."""
        with self._lock:
            for i, existing in enumerate(self._profiles):
                if existing.id == profile.id:
                    self._profiles[i] = profile
                    break
            else:
                self._profiles.append(profile)
            self._persist()

    def add_from_csv(self, csv_line: str) -> ServerProfile:
        """Add a profile from ``name,host,user,password`` (user/password optional).

        The new profile goes to the top of the list.
        """
        fields = [segment.strip() for segment in csv_line.split(",")]
        if len(fields) < 2:
            raise ValueError("Expected format: name,host,user,password(optional)")

        profile = ServerProfile(
            name=fields[0],
            host=fields[1],
            user=fields[2] if len(fields) > 2 and fields[2] else None,
            password=fields[3] if len(fields) > 3 and fields[3] else None,
            port=DEFAULT_SSH_PORT,
        )
        with self._lock:
            self._profiles.insert(0, profile)
            self._persist()
        return profile

    def touch(self, profile_id: str) -> ServerProfile:
        """Stamp ``last_used_at`` with the current time."""
        with self._lock:
            profile = self._find(profile_id)
            profile.last_used_at = datetime.now(timezone.utc)
            self._persist()
            return profile.model_copy()

    def delete(self, profile_id: str) -> None:
        with self._lock:
            profile = self._find(profile_id)
            self._profiles.remove(profile)
            self._persist()

    def _find(self, profile_id: str) -> ServerProfile:
        for profile in self._profiles:
            if profile.id == profile_id:
                return profile
        raise ProfileNotFound(profile_id)

    def _persist(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        data = [p.model_dump(mode="json", by_alias=True) for p in self._profiles]
        self.path.write_text(json.dumps(data, indent=2))

    def __len__(self) -> int:
        with self._lock:
            return len(self._profiles)
