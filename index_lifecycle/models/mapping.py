"""
Mapping model: a mapping is a set of document types, each holding a tree of fields.

Serialization depends on the engine generation (see `index_lifecycle.models.version`), which is passed in
explicitly so that every emitted value is decided by the same detection function.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
import logging

from cerberus import Validator

from index_lifecycle.models.errors import IncompleteDescriptorError
from index_lifecycle.models.utils import merge_dicts
from index_lifecycle.models.version import EngineGeneration

logger = logging.getLogger(__name__)

LEGACY_STRING_TYPE = "string"


class FieldType(Enum):
    BOOLEAN = "boolean"
    COMPLETION = "completion"
    DATE = "date"
    DOUBLE = "double"
    FLOAT = "float"
    INTEGER = "integer"
    LONG = "long"
    OBJECT = "object"
    NESTED = "nested"
    KEYWORD = "keyword"
    TEXT = "text"

    @property
    def is_analyzable(self) -> bool:
        return self == FieldType.TEXT

    @property
    def is_completion(self) -> bool:
        return self == FieldType.COMPLETION

    @property
    def has_properties(self) -> bool:
        """Object and nested fields hold child properties instead of multi-fields."""
        return self in (FieldType.OBJECT, FieldType.NESTED)

    def wire_type(self, generation: EngineGeneration) -> str:
        if generation == EngineGeneration.LEGACY and self in (FieldType.TEXT, FieldType.KEYWORD):
            return LEGACY_STRING_TYPE
        return self.value

    @classmethod
    def from_wire(cls, value: str, index: Any = None) -> 'FieldType':
        if value == LEGACY_STRING_TYPE:
            return cls.KEYWORD if index == "not_analyzed" else cls.TEXT
        return cls(value)


class IndexMode(Enum):
    ANALYZED = "analyzed"
    NOT_ANALYZED = "not_analyzed"
    # Not available on the modern generation, where it is equivalent to NOT_ANALYZED.
    NO = "no"

    def wire_value(self, generation: EngineGeneration) -> str | bool:
        if generation == EngineGeneration.LEGACY:
            return self.value
        return self == IndexMode.ANALYZED


class DynamicMode(Enum):
    FULL = True
    NONE = False
    STRICT = "strict"

    @classmethod
    def from_config(cls, value: str | bool) -> 'DynamicMode':
        if isinstance(value, bool):
            return cls(value)
        if value == "true" or value == "false":
            return cls(value == "true")
        return cls[value.upper()]


FIELD_SCHEMA = {
    "name": {"type": "string", "required": True, "empty": False},
    "type": {"type": "string", "required": True, "allowed": [t.value for t in FieldType]},
    "index_mode": {"type": "string", "required": False, "allowed": [m.value for m in IndexMode]},
    "index_analyzer": {"type": "string", "required": False},
    "search_analyzer": {"type": "string", "required": False},
    "include_in_all": {"type": "boolean", "required": False},
    "preserve_separators": {"type": "boolean", "required": False},
    "preserve_position_increments": {"type": "boolean", "required": False},
    "fields": {"type": "list", "required": False},
}

DOCUMENT_TYPE_SCHEMA = {
    "dynamic": {"type": ["string", "boolean"], "required": False,
                "allowed": ["full", "none", "strict", "true", "false", True, False]},
    "source_enabled": {"type": "boolean", "required": False},
    "all_enabled": {"type": "boolean", "required": False},
    "include_in_all": {"type": "boolean", "required": False},
    "parent": {"type": "string", "required": False},
    "fields": {"type": "list", "required": True, "minlength": 1},
}


@dataclass(frozen=True)
class Field:
    name: str
    type: FieldType
    index_mode: Optional[IndexMode] = None
    index_analyzer: Optional[str] = None
    search_analyzer: Optional[str] = None
    fields: Tuple['Field', ...] = ()
    include_in_all: bool = True
    preserve_separators: bool = True
    preserve_position_increments: bool = True

    def has_all_required_information(self) -> bool:
        if not self.name or not isinstance(self.type, FieldType):
            return False
        return all(f.has_all_required_information() for f in self.fields)

    def effective_index_mode(self) -> IndexMode:
        if self.index_mode is not None:
            return self.index_mode
        return IndexMode.ANALYZED if self.type.is_analyzable else IndexMode.NOT_ANALYZED

    def to_json(self, generation: EngineGeneration, as_multifield: bool = False) -> Dict[str, Any]:
        inner: Dict[str, Any] = {}
        if not as_multifield:
            inner["include_in_all"] = self.include_in_all
        inner["type"] = self.type.wire_type(generation)

        if self.type.is_analyzable:
            inner["index"] = self.effective_index_mode().wire_value(generation)
            if self.index_analyzer:
                inner["analyzer"] = self.index_analyzer
            if self.search_analyzer:
                inner["search_analyzer"] = self.search_analyzer
        elif self.type == FieldType.KEYWORD and (generation == EngineGeneration.LEGACY or self.index_mode):
            # A legacy keyword is a string field that must not be analyzed.
            inner["index"] = self.effective_index_mode().wire_value(generation)
        elif self.type.is_completion:
            if self.index_analyzer:
                inner["analyzer"] = self.index_analyzer
            if self.search_analyzer:
                inner["search_analyzer"] = self.search_analyzer
            inner["preserve_separators"] = self.preserve_separators
            inner["preserve_position_increments"] = self.preserve_position_increments

        children = [f for f in self.fields if f.has_all_required_information()]
        if children:
            if self.type.has_properties:
                inner["properties"] = merge_dicts(f.to_json(generation) for f in children)
            else:
                inner["fields"] = merge_dicts(f.to_json(generation, as_multifield=True) for f in children)
        return {self.name: inner}

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'Field':
        v = Validator(FIELD_SCHEMA)
        if not v.validate(config):
            raise ValueError(f"Invalid config for field {config.get('name')}", v.errors)
        return cls(
            name=config["name"],
            type=FieldType(config["type"]),
            index_mode=IndexMode(config["index_mode"]) if "index_mode" in config else None,
            index_analyzer=config.get("index_analyzer"),
            search_analyzer=config.get("search_analyzer"),
            fields=tuple(cls.from_config(child) for child in config.get("fields", [])),
            include_in_all=config.get("include_in_all", True),
            preserve_separators=config.get("preserve_separators", True),
            preserve_position_increments=config.get("preserve_position_increments", True),
        )

    @classmethod
    def from_engine_data(cls, name: str, data: Dict[str, Any]) -> Optional['Field']:
        """Rebuild a field from the engine's mapping document. Returns None for types this model doesn't know."""
        wire_type = data.get("type", FieldType.OBJECT.value if "properties" in data else None)
        try:
            field_type = FieldType.from_wire(wire_type, data.get("index"))
        except ValueError:
            logger.debug(f"Skipping field {name} with unsupported type {wire_type}")
            return None
        children = data.get("properties") if field_type.has_properties else data.get("fields")
        parsed_children = [cls.from_engine_data(k, v) for k, v in (children or {}).items()]
        return cls(
            name=name,
            type=field_type,
            index_analyzer=data.get("analyzer"),
            search_analyzer=data.get("search_analyzer"),
            fields=tuple(c for c in parsed_children if c is not None),
            include_in_all=data.get("include_in_all", True),
        )


@dataclass(frozen=True)
class DocumentType:
    name: str
    fields: Tuple[Field, ...]
    dynamic: DynamicMode = DynamicMode.NONE
    source_enabled: bool = True
    all_enabled: bool = False
    include_in_all: bool = False
    parent: Optional[str] = None

    def has_all_required_information(self) -> bool:
        return bool(self.name) and len(self.fields) > 0 and all(f.has_all_required_information() for f in self.fields)

    def to_json(self, generation: EngineGeneration) -> Dict[str, Any]:
        inner: Dict[str, Any] = {
            "dynamic": self.dynamic.value,
            "properties": merge_dicts(f.to_json(generation) for f in self.fields if f.has_all_required_information()),
            "include_in_all": self.include_in_all,
            "_all": {"enabled": self.all_enabled},
            "_source": {"enabled": self.source_enabled},
        }
        if self.parent:
            inner["_parent"] = {"type": self.parent}
        return {self.name: inner}

    @classmethod
    def from_config(cls, name: str, config: Dict[str, Any]) -> 'DocumentType':
        v = Validator(DOCUMENT_TYPE_SCHEMA)
        if not v.validate(config):
            raise ValueError(f"Invalid config for document type {name}", v.errors)
        return cls(
            name=name,
            fields=tuple(Field.from_config(f) for f in config["fields"]),
            dynamic=DynamicMode.from_config(config.get("dynamic", "none")),
            source_enabled=config.get("source_enabled", True),
            all_enabled=config.get("all_enabled", False),
            include_in_all=config.get("include_in_all", False),
            parent=config.get("parent"),
        )

    @classmethod
    def from_engine_data(cls, name: str, data: Dict[str, Any]) -> 'DocumentType':
        parsed = [Field.from_engine_data(k, v) for k, v in (data.get("properties") or {}).items()]
        dynamic = data.get("dynamic", False)
        if isinstance(dynamic, str) and dynamic != "strict":
            dynamic = dynamic == "true"
        return cls(
            name=name,
            fields=tuple(f for f in parsed if f is not None),
            dynamic=DynamicMode(dynamic),
            source_enabled=(data.get("_source") or {}).get("enabled", True),
            all_enabled=(data.get("_all") or {}).get("enabled", False),
            include_in_all=data.get("include_in_all", False),
            parent=(data.get("_parent") or {}).get("type"),
        )


@dataclass(frozen=True)
class Mapping:
    types: Tuple[DocumentType, ...] = ()

    def has_all_required_information(self) -> bool:
        return len(self.types) > 0 and all(t.has_all_required_information() for t in self.types)

    def validate(self) -> None:
        if not self.has_all_required_information():
            raise IncompleteDescriptorError(self, "mapping needs at least one complete document type")

    @property
    def type_names(self) -> List[str]:
        return [t.name for t in self.types]

    def to_json(self, generation: EngineGeneration) -> Dict[str, Any]:
        return merge_dicts(t.to_json(generation) for t in self.types if t.has_all_required_information())

    @classmethod
    def from_config(cls, config: Dict[str, Dict[str, Any]]) -> 'Mapping':
        return cls(types=tuple(DocumentType.from_config(name, type_config) for name, type_config in config.items()))

    @classmethod
    def from_engine_data(cls, data: Dict[str, Any]) -> 'Mapping':
        parsed = [DocumentType.from_engine_data(name, type_data) for name, type_data in (data or {}).items()]
        return cls(types=tuple(t for t in parsed if t.has_all_required_information()))
