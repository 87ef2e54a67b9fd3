"""Shared fixtures: a small anatomy taxonomy in an in-memory knowledge base."""

import pytest

from tablerules.knowledge import InMemoryKnowledgeBase

TAXONOMY = {
    "prefixes": {"ex": "http://example.org/"},
    "classes": [
        {"iri": "ex:entity", "label": "entity"},
        {"iri": "ex:material_entity", "label": "material entity", "parents": ["ex:entity"]},
        {"iri": "ex:process", "label": "process", "parents": ["ex:entity"]},
        {"iri": "ex:organ", "label": "organ", "parents": ["ex:material_entity"]},
        {"iri": "ex:heart", "label": "heart", "parents": ["ex:organ"]},
        {"iri": "ex:liver", "label": "liver", "parents": ["ex:organ"]},
        {"iri": "ex:cardiac_organ", "label": "cardiac organ", "equivalents": ["ex:heart"]},
        {"iri": "ex:sample", "label": "sample", "parents": ["ex:material_entity"]},
        {"iri": "ex:blood_sample", "label": "blood sample", "parents": ["ex:sample"]},
    ],
    "individuals": [
        {"iri": "ex:s1", "label": "sample 1", "types": ["ex:blood_sample"]},
        {"iri": "ex:h1", "label": "heart 1", "types": ["ex:heart"]},
    ],
}

EX = "http://example.org/"


@pytest.fixture
def kb():
    """In-memory knowledge base over the test taxonomy."""
    return InMemoryKnowledgeBase.from_dict(TAXONOMY)
