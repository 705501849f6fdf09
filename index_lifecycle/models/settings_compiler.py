from typing import Any, Dict, Iterable, List, Optional
import logging

from index_lifecycle.models.analysis import AnalysisComponent, Analyzer
from index_lifecycle.models.index import IndexDescriptor
from index_lifecycle.models.utils import merge_dicts
from index_lifecycle.models.version import EngineGeneration

logger = logging.getLogger(__name__)


def _registrable(components: Iterable[Optional[AnalysisComponent]]) -> List[AnalysisComponent]:
    return [c for c in components
            if c is not None and c.requires_separate_registry and c.has_all_required_information()]


def compile_analysis(analyzers: Iterable[Analyzer]) -> Optional[Dict[str, Any]]:
    """
    Build the `analysis` settings block, or None if no analyzer needs one.

    Only custom components are declared: analyzers are filtered first, then the tokenizers and filters of the
    surviving analyzers are filtered the same way. Components are keyed by name, so one shared by several
    analyzers is declared once.
    """
    custom_analyzers = _registrable(analyzers)
    if not custom_analyzers:
        return None

    tokenizers = _registrable(a.tokenizer for a in custom_analyzers)
    token_filters = _registrable(f for a in custom_analyzers for f in a.token_filters)
    char_filters = _registrable(f for a in custom_analyzers for f in a.char_filters)

    analysis: Dict[str, Any] = {"analyzer": merge_dicts(a.to_json() for a in custom_analyzers)}
    if tokenizers:
        analysis["tokenizer"] = merge_dicts(t.to_json() for t in tokenizers)
    if token_filters:
        analysis["filter"] = merge_dicts(f.to_json() for f in token_filters)
    if char_filters:
        analysis["char_filter"] = merge_dicts(f.to_json() for f in char_filters)
    return analysis


def compile_index(descriptor: IndexDescriptor, generation: EngineGeneration,
                  include_aliases: bool = False) -> Dict[str, Any]:
    """
    Turn a descriptor into the body of a create-index request. Raises IncompleteDescriptorError for a
    descriptor without a name or a complete mapping.
    """
    descriptor.validate()
    body: Dict[str, Any] = {
        "settings": {
            "number_of_shards": descriptor.number_of_shards,
            "number_of_replicas": descriptor.number_of_replicas,
        },
        "mappings": descriptor.mapping.to_json(generation),
    }

    analysis = compile_analysis(descriptor.analyzers)
    if analysis is not None:
        body["settings"]["analysis"] = analysis

    if include_aliases and descriptor.index_alias and descriptor.search_alias:
        body["aliases"] = {descriptor.index_alias: {}, descriptor.search_alias: {}}

    logger.debug(f"Compiled creation document for {descriptor.name}: {body}")
    return body
