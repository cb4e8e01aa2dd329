"""Slug derivation and uniqueness-scoped slug allocation."""

import logging
import re
import unicodedata
from typing import Callable, TypeVar

from .store.db import DuplicateKeyError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_LENGTH = 80
DEFAULT_FALLBACK = "note"

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")


class SlugConflictError(Exception):
    """Slug allocation kept colliding with concurrent writers."""

    def __init__(self, scope: str, base: str, attempts: int):
        self.scope = scope
        self.base = base
        self.attempts = attempts
        super().__init__(
            f"Could not allocate a unique slug for '{base}' in {scope} after {attempts} attempt(s)"
        )


def slugify(text: str | None, max_length: int = DEFAULT_MAX_LENGTH, fallback: str = DEFAULT_FALLBACK) -> str:
    """Derive a URL-safe slug from free text.

    Lower-cases, strips diacritics, collapses runs of other characters into a
    single hyphen and truncates to ``max_length``. Letters without an NFKD
    decomposition are dropped rather than transliterated.

    Examples:
        >>> slugify("Crème Brûlée: Tips & Tricks")
        'creme-brulee-tips-tricks'
        >>> slugify("!!!")
        'note'
        >>> slugify("ß straße")
        'stra-e'
    """
    decomposed = unicodedata.normalize("NFKD", text or "")
    ascii_text = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    slug = _NON_ALNUM_RE.sub("-", ascii_text.lower()).strip("-")
    slug = slug[:max_length].rstrip("-")
    return slug or fallback


def with_suffix(base: str, n: int) -> str:
    """``base`` for n == 1, else ``base-n``."""
    return base if n <= 1 else f"{base}-{n}"


class SlugAllocator:
    """Allocates slugs that are free within a caller-described scope.

    A scope is expressed as an ``exists(slug) -> bool`` callable, e.g. "notes
    under topic T" or "subjects". Probing reserves nothing, so creation goes
    through :meth:`create_unique`, which treats the store's uniqueness index
    as the source of truth and re-probes after a duplicate-key failure.
    """

    def __init__(self, max_length: int = DEFAULT_MAX_LENGTH, max_retries: int = 3):
        self.max_length = max_length
        self.max_retries = max_retries

    def base_slug(self, text: str | None, fallback: str = DEFAULT_FALLBACK) -> str:
        return slugify(text, max_length=self.max_length, fallback=fallback)

    @staticmethod
    def _probe(base: str, exists: Callable[[str], bool], start: int) -> tuple[str, int]:
        n = start
        while exists(with_suffix(base, n)):
            n += 1
        return with_suffix(base, n), n

    def allocate(self, base: str, exists: Callable[[str], bool]) -> str:
        """Return the first of base, base-2, base-3, ... not taken in the scope."""
        slug, _ = self._probe(base, exists, 1)
        return slug

    def create_unique(
        self,
        base: str,
        exists: Callable[[str], bool],
        create: Callable[[str], T],
        scope: str = "scope",
    ) -> T:
        """Allocate a slug and create the record with it, retrying on conflicts.

        Args:
            base: Desired slug
            exists: Scope membership check
            create: Persists the record with the given slug; raises
                DuplicateKeyError when the slug was claimed meanwhile
            scope: Human-readable scope for log and error messages

        Raises:
            SlugConflictError: After ``max_retries`` retries still conflict
        """
        start = 1
        conflicts = 0
        while True:
            slug, n = self._probe(base, exists, start)
            try:
                return create(slug)
            except DuplicateKeyError as e:
                conflicts += 1
                logger.warning(f"Slug '{slug}' in {scope} was taken during create ({conflicts}): {e.detail}")
                if conflicts > self.max_retries:
                    raise SlugConflictError(scope, base, conflicts) from e
                start = n + 1
