"""Find-or-create resolution of subject/topic labels."""

import logging
from typing import Optional

from .models.store import Subject, Topic
from .slugs import SlugAllocator
from .store.db import DuplicateKeyError
from .store.repositories import SubjectRepository, TopicRepository

logger = logging.getLogger(__name__)


def clean_label(label: Optional[str]) -> Optional[str]:
    """Trimmed label, or None when blank."""
    if label is None:
        return None
    label = label.strip()
    return label or None


class HierarchyResolver:
    """Resolves free-text labels to Subject and Topic records.

    Names match exactly (case-sensitive). Missing entities are created with a
    slug unique among subjects, or among the topics of the owning subject.
    """

    def __init__(
        self,
        subjects: SubjectRepository,
        topics: TopicRepository,
        allocator: Optional[SlugAllocator] = None,
    ):
        self.subjects = subjects
        self.topics = topics
        self.allocator = allocator or SlugAllocator()

    def resolve_subject(self, label: Optional[str]) -> Optional[Subject]:
        name = clean_label(label)
        if name is None:
            return None

        existing = self.subjects.find_by_name(name)
        if existing:
            return existing

        def create(slug: str) -> Subject:
            try:
                return self.subjects.create(name, slug)
            except DuplicateKeyError:
                # Lost a race on the name itself rather than the slug
                raced = self.subjects.find_by_name(name)
                if raced:
                    return raced
                raise

        subject = self.allocator.create_unique(
            self.allocator.base_slug(name, fallback="untitled"),
            self.subjects.slug_exists,
            create,
            scope="subjects",
        )
        logger.info(f"Created subject '{name}' ({subject.slug})")
        return subject

    def resolve_topic(self, subject: Optional[Subject], label: Optional[str]) -> Optional[Topic]:
        name = clean_label(label)
        if subject is None or name is None:
            return None

        existing = self.topics.find_by_name(subject.id, name)
        if existing:
            return existing

        def create(slug: str) -> Topic:
            try:
                return self.topics.create(subject.id, name, slug)
            except DuplicateKeyError:
                raced = self.topics.find_by_name(subject.id, name)
                if raced:
                    return raced
                raise

        topic = self.allocator.create_unique(
            self.allocator.base_slug(name, fallback="untitled"),
            lambda slug: self.topics.slug_exists(subject.id, slug),
            create,
            scope=f"topics of subject '{subject.name}'",
        )
        logger.info(f"Created topic '{name}' under '{subject.name}' ({topic.slug})")
        return topic

    def resolve(
        self, subject_label: Optional[str], topic_label: Optional[str]
    ) -> tuple[Optional[Subject], Optional[Topic]]:
        """Resolve both labels; a topic label without a subject yields no topic."""
        subject = self.resolve_subject(subject_label)
        topic = self.resolve_topic(subject, topic_label)
        return subject, topic
