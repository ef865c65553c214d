from salon_assistant.conversation.grounding import extract
from salon_assistant.domain.models import MapSource, WebSource


def test_extract_empty_when_fields_missing():
    assert extract({}) == []
    assert extract({"candidates": []}) == []
    assert extract({"candidates": [{"content": {"parts": [{"text": "hi"}]}}]}) == []
    assert extract({"candidates": [{"groundingMetadata": {}}]}) == []
    assert extract({"candidates": [{"groundingMetadata": {"groundingChunks": None}}]}) == []
    assert extract(None) == []
    assert extract({"candidates": "nope"}) == []


def test_extract_preserves_order_and_kinds():
    raw = {
        "candidates": [
            {
                "groundingMetadata": {
                    "groundingChunks": [
                        {"web": {"uri": "https://a.example", "title": "A"}},
                        {
                            "maps": {
                                "uri": "https://maps.google.com/?cid=1",
                                "title": "Maswadh Salon",
                                "placeAnswerSources": [
                                    {"reviewSnippets": [{"content": "Great fade"}, {"content": "  "}]}
                                ],
                            }
                        },
                        {"web": {"uri": "https://b.example"}},
                    ]
                }
            }
        ]
    }
    chunks = extract(raw)
    assert len(chunks) == 3
    assert chunks[0] == WebSource(uri="https://a.example", title="A")
    assert isinstance(chunks[1], MapSource)
    assert chunks[1].title == "Maswadh Salon"
    assert chunks[1].review_snippets == ("Great fade",)
    assert chunks[2].title is None
    assert chunks[2].display_title == "Web Source"


def test_extract_drops_malformed_chunks():
    raw = {
        "candidates": [
            {
                "groundingMetadata": {
                    "groundingChunks": [
                        {"web": {"title": "no uri"}},
                        {"retrievedContext": {"uri": "x"}},
                        "garbage",
                        {"maps": {"uri": "https://maps.example"}},
                    ]
                }
            }
        ]
    }
    chunks = extract(raw)
    assert chunks == [MapSource(uri="https://maps.example")]
    assert chunks[0].display_title == "Google Maps"


def test_extract_reads_first_candidate_only():
    raw = {
        "candidates": [
            {"content": {"parts": [{"text": "first"}]}},
            {"groundingMetadata": {"groundingChunks": [{"web": {"uri": "https://second.example"}}]}},
        ]
    }
    assert extract(raw) == []
