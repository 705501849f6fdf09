"""
Text analysis components: analyzers and the tokenizers, token filters and char filters they reference.

A component whose name equals its type is one of the engine's built-ins and is referenced by name only.
Any other component is custom and has to be declared in the `analysis` section of the index settings.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
import logging

from cerberus import Validator

from index_lifecycle.models.schema_tools import list_schema
from index_lifecycle.models.errors import IncompleteDescriptorError

logger = logging.getLogger(__name__)

COMPONENT_SCHEMA = {
    "type": "dict",
    "schema": {
        "name": {"type": "string", "required": True, "empty": False},
        "type": {"type": "string", "required": True, "empty": False},
        "settings": {"type": "dict", "required": False},
    }
}

ANALYZER_SCHEMA = {
    "type": "dict",
    "schema": {
        "name": {"type": "string", "required": True, "empty": False},
        "type": {"type": "string", "required": False},
        "tokenizer": {"type": "string", "required": False},
        "filters": list_schema(required=False),
        "char_filters": list_schema(required=False),
        "settings": {"type": "dict", "required": False},
    }
}

SCHEMA = {
    "analysis": {
        "type": "dict",
        "schema": {
            "analyzers": {"type": "list", "required": False, "schema": ANALYZER_SCHEMA},
            "tokenizers": {"type": "list", "required": False, "schema": COMPONENT_SCHEMA},
            "token_filters": {"type": "list", "required": False, "schema": COMPONENT_SCHEMA},
            "char_filters": {"type": "list", "required": False, "schema": COMPONENT_SCHEMA},
        }
    }
}


@dataclass(frozen=True)
class AnalysisComponent:
    name: str
    type: str
    settings: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def builtin(cls, name: str):
        return cls(name=name, type=name)

    @property
    def requires_separate_registry(self) -> bool:
        return self.name != self.type

    def has_all_required_information(self) -> bool:
        return bool(self.name) and bool(self.type)

    def to_json(self) -> Dict[str, Any]:
        return {self.name: {"type": self.type, **self.settings}}


class Tokenizer(AnalysisComponent):
    pass


class TokenFilter(AnalysisComponent):
    pass


class CharFilter(AnalysisComponent):
    pass


@dataclass(frozen=True)
class Analyzer(AnalysisComponent):
    type: str = "custom"
    tokenizer: Optional[Tokenizer] = None
    token_filters: Tuple[TokenFilter, ...] = ()
    char_filters: Tuple[CharFilter, ...] = ()

    def has_all_required_information(self) -> bool:
        return bool(self.name)

    def to_json(self) -> Dict[str, Any]:
        inner: Dict[str, Any] = {}
        if self.type:
            inner["type"] = self.type
        if self.tokenizer is not None:
            inner["tokenizer"] = self.tokenizer.name
        if self.token_filters:
            inner["filter"] = [f.name for f in self.token_filters]
        if self.char_filters:
            inner["char_filter"] = [f.name for f in self.char_filters]
        inner.update(self.settings)
        return {self.name: inner}


STANDARD_ANALYZER = Analyzer.builtin("standard")
SIMPLE_ANALYZER = Analyzer.builtin("simple")
ICU_TOKENIZER = Tokenizer.builtin("icu_tokenizer")
ICU_FOLDING = TokenFilter.builtin("icu_folding")
LOWERCASE = TokenFilter.builtin("lowercase")
ASCII_FOLDING = TokenFilter.builtin("asciifolding")
HTML_STRIP = CharFilter.builtin("html_strip")
TRIGRAMS = TokenFilter(name="trigrams", type="nGram", settings={"min_gram": 3, "max_gram": 3})
ICU_ANALYZER = Analyzer(name="icu-analyzer", tokenizer=ICU_TOKENIZER, token_filters=(ICU_FOLDING,))


def _components_by_name(configs: List[Dict], component_class) -> Dict[str, AnalysisComponent]:
    return {c["name"]: component_class(name=c["name"], type=c["type"], settings=c.get("settings", {}))
            for c in configs}


def _resolve(name: str, declared: Dict[str, AnalysisComponent], component_class):
    # Anything not declared is assumed to be one of the engine's built-ins.
    return declared.get(name) or component_class.builtin(name)


def analyzers_from_config(config: Optional[Dict]) -> List[Analyzer]:
    """
    Build analyzers from the `analysis` section of an index config. Components are referenced by name from
    each analyzer; names that are not declared in the same section are treated as built-ins.
    """
    if not config:
        return []
    v = Validator(SCHEMA)
    if not v.validate({"analysis": config}):
        raise ValueError("Invalid config file for analysis", v.errors)

    tokenizers = _components_by_name(config.get("tokenizers", []), Tokenizer)
    token_filters = _components_by_name(config.get("token_filters", []), TokenFilter)
    char_filters = _components_by_name(config.get("char_filters", []), CharFilter)

    analyzers = []
    for analyzer_config in config.get("analyzers", []):
        tokenizer_name = analyzer_config.get("tokenizer")
        analyzer = Analyzer(
            name=analyzer_config["name"],
            type=analyzer_config.get("type", "custom"),
            settings=analyzer_config.get("settings", {}),
            tokenizer=_resolve(tokenizer_name, tokenizers, Tokenizer) if tokenizer_name else None,
            token_filters=tuple(_resolve(n, token_filters, TokenFilter) for n in analyzer_config.get("filters", [])),
            char_filters=tuple(_resolve(n, char_filters, CharFilter) for n in analyzer_config.get("char_filters", [])),
        )
        if not analyzer.has_all_required_information():
            raise IncompleteDescriptorError(analyzer)
        analyzers.append(analyzer)
    logger.debug(f"Built {len(analyzers)} analyzer(s) from config")
    return analyzers
