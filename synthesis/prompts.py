"""Role instructions and request builders for the three synthesis stages."""

import json
from typing import Any, Dict, List

STRUCTURE_SYSTEM = (
    "Create comprehensive documentation with 8+ sections: Getting Started, Features, "
    "Tutorials, Troubleshooting, FAQ, Best Practices, API Reference, Use Cases. Include real "
    "examples, code, and solutions. Attribute every technical solution to its source "
    "(Stack Overflow, GitHub, or official docs). Return valid JSON with: title, description, "
    "sections array, metadata, theme, searchability, and source_citations (a list of the "
    "source URLs you relied on)."
)

WRITING_SYSTEM = (
    "Write professional documentation for the given structure. Each section has content "
    "blocks (paragraph, heading, list, code, callout, table). For every technical solution, "
    "code example or troubleshooting tip, add a markdown source link such as "
    "\"Source: [Stack Overflow](url)\". Return JSON: {title, description, sections: "
    "[{id, title, icon, content, sources?: [{title, url, type}]}]}."
)

METADATA_SYSTEM = (
    "Generate metadata for documentation. Return JSON: {metadata: {title, description, "
    "keywords}, searchability: {primary_tags, synonyms, search_keywords}, "
    "validation: {status}}."
)


def _dump(value: Any) -> str:
    return json.dumps(value, indent=2, ensure_ascii=False, default=str)


def structure_messages(corpus_payload: Dict[str, Any], complexity: str) -> List[Dict[str, str]]:
    user = (
        f"PRODUCT: {corpus_payload.get('product_name')}\n"
        f"URL: {corpus_payload.get('base_url')}\n"
        f"COMPLEXITY: {complexity}\n\n"
        f"CORPUS:\n{_dump(corpus_payload)}\n\n"
        "Create 8-12 sections tailored to this product. Return JSON."
    )
    return [{'role': 'system', 'content': STRUCTURE_SYSTEM}, {'role': 'user', 'content': user}]


def writing_messages(structure_payload: Dict[str, Any]) -> List[Dict[str, str]]:
    user = (
        f"Create comprehensive documentation from this structure:\n{_dump(structure_payload)}\n\n"
        "Include a setup guide with prerequisites, feature guides with examples, step-by-step "
        "tutorials, troubleshooting with sources, an FAQ and an API reference. Return valid JSON."
    )
    return [{'role': 'system', 'content': WRITING_SYSTEM}, {'role': 'user', 'content': user}]


def metadata_messages(written_payload: Dict[str, Any], url: str, pages: int, sources: int) -> List[Dict[str, str]]:
    user = (
        f"URL: {url}, pages: {pages}, sources: {sources}.\n"
        f"DOCUMENTATION:\n{_dump(written_payload)}\n\n"
        "Return metadata JSON."
    )
    return [{'role': 'system', 'content': METADATA_SYSTEM}, {'role': 'user', 'content': user}]
