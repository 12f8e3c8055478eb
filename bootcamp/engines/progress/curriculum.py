"""
Curriculum model - the ordered modules and topics a course is measured on.
"""

from typing import Any, Iterable, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from bootcamp.kernel.errors import InvalidTopicReference


class CurriculumModule(BaseModel):
    """One module: an ordered list of topic identifiers plus display fields."""

    model_config = ConfigDict(frozen=True)

    title: str = ""
    week: Optional[int] = None
    project: Optional[str] = None
    topics: Tuple[str, ...] = ()

    @field_validator("topics")
    @classmethod
    def topics_unique(cls, topics: Tuple[str, ...]) -> Tuple[str, ...]:
        seen = set()
        for topic in topics:
            if topic in seen:
                raise ValueError(f"Duplicate topic in module: {topic!r}")
            seen.add(topic)
        return topics


class CurriculumModel(BaseModel):
    """
    Immutable view of a course curriculum.

    A topic is addressed by ``(module_index, topic)``; indexes follow the
    stored module order.
    """

    model_config = ConfigDict(frozen=True)

    modules: Tuple[CurriculumModule, ...] = Field(default_factory=tuple)

    @classmethod
    def from_raw(cls, raw: Optional[Iterable[Any]]) -> "CurriculumModel":
        """
        Build from the JSON stored on a course.

        Entries may be module dicts or bare topic lists. A string is never
        split into topics.

        Raises:
            TypeError: an entry is neither a module object nor a list of topics
            ValidationError: a module fails field validation
        """
        modules = []
        for entry in raw or []:
            if isinstance(entry, CurriculumModule):
                modules.append(entry)
            elif isinstance(entry, dict):
                modules.append(CurriculumModule.model_validate(entry))
            elif isinstance(entry, (list, tuple)):
                modules.append(CurriculumModule(topics=tuple(entry)))
            else:
                raise TypeError(
                    f"Curriculum module must be a list of topics or an object, got {type(entry).__name__}"
                )
        return cls(modules=tuple(modules))

    @classmethod
    def from_course(cls, course: Any) -> "CurriculumModel":
        return cls.from_raw(course.curriculum)

    def to_raw(self) -> list[dict]:
        return [module.model_dump(mode="json") for module in self.modules]

    @property
    def total_topics(self) -> int:
        return sum(len(module.topics) for module in self.modules)

    def contains(self, module_index: int, topic: str) -> bool:
        if module_index < 0 or module_index >= len(self.modules):
            return False
        return topic in self.modules[module_index].topics

    def require_topic(self, module_index: int, topic: str) -> None:
        """Raise ``InvalidTopicReference`` unless the pair is in this curriculum."""
        if not self.contains(module_index, topic):
            raise InvalidTopicReference(
                f"Topic {topic!r} is not part of module {module_index}",
                module_index=module_index,
                topic=topic,
            )
