"""Typed views over the JSON each synthesis stage returns.

Model output is schema-less. Each stage output names the fields the pipeline
reads; a field missing from the payload holds `UNSET`, and keys the
pipeline does not know about are kept in `extra`. `to_payload()` rebuilds
the original object so the next stage sees it verbatim.
"""

from dataclasses import dataclass, field, fields
from typing import Any, Dict, List


class _Unset:
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return 'UNSET'

    def __bool__(self) -> bool:
        return False

    def __copy__(self):
        return self

    def __deepcopy__(self, memo):
        return self


UNSET: Any = _Unset()


def is_set(value: Any) -> bool:
    return value is not UNSET


class StageOutput:
    """Base for stage outputs; subclasses are dataclasses whose fields default to UNSET."""

    extra: Dict[str, Any]

    @classmethod
    def known_fields(cls) -> List[str]:
        return [f.name for f in fields(cls) if f.name != 'extra']

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]):
        known = cls.known_fields()
        values = {name: payload[name] for name in known if name in payload}
        extra = {k: v for k, v in payload.items() if k not in known}
        return cls(extra=extra, **values)

    def to_payload(self) -> Dict[str, Any]:
        payload = {}
        for name in self.known_fields():
            value = getattr(self, name)
            if is_set(value):
                payload[name] = value
        payload.update(self.extra)
        return payload

    def get(self, name: str, default: Any = None) -> Any:
        value = getattr(self, name, UNSET)
        if is_set(value):
            return value
        return self.extra.get(name, default)


@dataclass
class ExtractedStructure(StageOutput):
    title: Any = UNSET
    description: Any = UNSET
    sections: Any = UNSET
    metadata: Any = UNSET
    theme: Any = UNSET
    searchability: Any = UNSET
    source_citations: Any = UNSET
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass
class WrittenDocumentation(StageOutput):
    title: Any = UNSET
    description: Any = UNSET
    sections: Any = UNSET
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass
class FinalMetadata(StageOutput):
    metadata: Any = UNSET
    searchability: Any = UNSET
    validation: Any = UNSET
    sections: Any = UNSET
    extra: Dict[str, Any] = field(default_factory=dict)
