"""Append-only storage for blog posts.

Two backends share one contract (``append`` and ``list``):

* ``JsonFilePostRepository`` keeps the whole collection as one JSON array
  and rewrites the file on every append.
* ``SqlPostRepository`` keeps posts in the ``blogs`` table through
  Flask-SQLAlchemy.

Posts are never edited or deleted once stored.
"""

import json
import logging
import os
import tempfile
import threading
import time
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError

from errors import ConflictError, PersistenceError, ValidationError
from models import Post, db, make_post

logger = logging.getLogger(__name__)

_id_lock = threading.Lock()
_last_id = 0


def new_post_id(clock=time.time, after=0) -> str:
    """Millisecond timestamp id, bumped past the previous one if the clock stalls.

    ``after`` is the highest id already stored, so ids stay unique across
    restarts even when the clock has stepped backwards.
    """
    global _last_id
    with _id_lock:
        candidate = int(clock() * 1000)
        floor = max(_last_id, after)
        if candidate <= floor:
            candidate = floor + 1
        _last_id = candidate
        return str(candidate)


def utc_now_iso() -> str:
    # Same shape as JavaScript's Date.toISOString(): 2024-01-01T12:00:00.000Z
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def highest_id(ids) -> int:
    """Largest numeric id in ``ids``; non-numeric ids are ignored."""
    numeric = [int(i) for i in ids if isinstance(i, str) and i.isdigit()]
    return max(numeric, default=0)


def validate_candidate(candidate):
    """Raise ValidationError unless title and content are non-empty strings."""
    if not isinstance(candidate, dict):
        raise ValidationError()
    for field in ("title", "content"):
        value = candidate.get(field)
        if not isinstance(value, str) or not value.strip():
            raise ValidationError()


class PostRepository:
    """Interface for post storage engines."""

    def ensure_storage(self):
        raise NotImplementedError

    def append(self, candidate, expected_version=None):
        """Validate and store a new post, returning the stored dict.

        ``expected_version`` is the collection size the caller last saw;
        when given and stale, ConflictError is raised and nothing is written.
        """
        raise NotImplementedError

    def list(self):
        raise NotImplementedError

    def version(self) -> int:
        return len(self.list())


# One lock per collection file, shared by every repository pointing at it
_file_locks = {}
_file_locks_guard = threading.Lock()


def _lock_for(path):
    with _file_locks_guard:
        return _file_locks.setdefault(path, threading.Lock())


class JsonFilePostRepository(PostRepository):
    def __init__(self, path):
        self.path = os.path.abspath(path)
        self._lock = _lock_for(self.path)

    def ensure_storage(self):
        """Create the data directory and an empty collection if missing."""
        try:
            os.makedirs(os.path.dirname(self.path), exist_ok=True)
            if not os.path.exists(self.path):
                with open(self.path, "w", encoding="utf-8") as f:
                    f.write("[]")
        except OSError as e:
            raise PersistenceError(details=str(e)) from e

    def _read_all(self):
        # A missing or broken file means "start fresh", never an error
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Error reading blogs file %s: %s", self.path, e)
            return []
        if not isinstance(data, list):
            logger.warning("Blogs file %s does not hold a JSON array; starting fresh", self.path)
            return []
        return data

    def _write_all(self, posts):
        tmp_path = None
        try:
            fd, tmp_path = tempfile.mkstemp(
                prefix=".blogs-", suffix=".json", dir=os.path.dirname(self.path)
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(posts, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.path)
        except (OSError, TypeError, ValueError) as e:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.remove(tmp_path)
            logger.error("Error saving blog to %s: %s", self.path, e)
            raise PersistenceError(details=str(e)) from e

    def append(self, candidate, expected_version=None):
        validate_candidate(candidate)
        with self._lock:
            self.ensure_storage()
            posts = self._read_all()
            if expected_version is not None and expected_version != len(posts):
                raise ConflictError()
            after = highest_id(p.get("id") for p in posts if isinstance(p, dict))
            post = make_post(candidate, new_post_id(after=after), utc_now_iso())
            posts.append(post)
            self._write_all(posts)
        logger.info("Saved blog %s (%d in collection)", post["id"], len(posts))
        return post

    def list(self):
        return self._read_all()


class SqlPostRepository(PostRepository):
    """Posts in a relational table. Needs an active Flask app context."""

    _write_lock = threading.Lock()

    def __init__(self, database=db):
        self.db = database

    def ensure_storage(self):
        try:
            self.db.create_all()
        except SQLAlchemyError as e:
            raise PersistenceError(details=str(e)) from e

    def _count(self):
        return self.db.session.scalar(self.db.select(self.db.func.count()).select_from(Post))

    def append(self, candidate, expected_version=None):
        validate_candidate(candidate)
        with self._write_lock:
            try:
                count = self._count() or 0
                if expected_version is not None and expected_version != count:
                    raise ConflictError()
                last_seq = self.db.session.scalar(self.db.select(self.db.func.max(Post.seq)))
                last_id = self.db.session.scalar(
                    self.db.select(Post.id).order_by(Post.seq.desc()).limit(1)
                )
                after = highest_id([last_id])
                post = make_post(candidate, new_post_id(after=after), utc_now_iso())
                self.db.session.add(Post.from_dict(post, (last_seq or 0) + 1))
                self.db.session.commit()
            except SQLAlchemyError as e:
                self.db.session.rollback()
                logger.error("Error saving blog: %s", e)
                raise PersistenceError(details=str(e)) from e
        logger.info("Saved blog %s", post["id"])
        return post

    def list(self):
        try:
            rows = self.db.session.scalars(self.db.select(Post).order_by(Post.seq)).all()
        except SQLAlchemyError as e:
            self.db.session.rollback()
            logger.warning("Error reading blogs table: %s", e)
            return []
        return [row.to_dict() for row in rows]

    def version(self) -> int:
        try:
            return self._count() or 0
        except SQLAlchemyError as e:
            self.db.session.rollback()
            logger.warning("Error counting blogs: %s", e)
            return 0
