"""Built-in ``demo`` document served when no stored page exists for it."""

from __future__ import annotations

from models.blocks import DEMO_DOCUMENT_ID, Document

_DEMO_PAYLOAD: dict = {
    "id": DEMO_DOCUMENT_ID,
    "title": "Weekly Operations Report",
    "blocks": [
        {"id": "h1-overview", "type": "heading", "level": 1, "text": "Weekly Operations Report"},
        {
            "id": "p-intro",
            "type": "paragraph",
            "text": "This report is generated from Block JSON as the source of truth "
            "and rendered by dedicated clients.",
        },
        {"id": "divider-1", "type": "divider"},
        {
            "id": "cols-metrics",
            "type": "columns",
            "gap": 24,
            "columns": [
                {
                    "id": "col-left",
                    "blocks": [
                        {"id": "h2-traffic", "type": "heading", "level": 2, "text": "Traffic"},
                        {
                            "id": "p-traffic",
                            "type": "paragraph",
                            "text": "Visits grew 12% week over week.",
                        },
                    ],
                },
                {
                    "id": "col-right",
                    "blocks": [
                        {
                            "id": "chart-visits",
                            "type": "chart",
                            "title": "Daily visits",
                            "height": 320,
                            "option": {
                                "xAxis": {"type": "category", "data": ["Mon", "Tue", "Wed", "Thu", "Fri"]},
                                "yAxis": {"type": "value"},
                                "series": [{"type": "line", "data": [820, 932, 901, 934, 1290]}],
                            },
                        },
                    ],
                },
            ],
        },
        {
            "id": "rich-notes",
            "type": "rich",
            "items": [
                {"type": "text", "text": "Notes from the operations review."},
                {
                    "type": "image",
                    "src": "https://example.com/assets/ops-board.png",
                    "caption": "Ops board snapshot",
                    "widthPercent": 60,
                },
            ],
        },
        {
            "id": "p-summary",
            "type": "paragraph",
            "text": "Export creates a static site bundle that can be hosted directly by Nginx or Caddy.",
        },
    ],
}


def build_demo_document() -> Document:
    """Return a fresh copy of the seed document."""
    return Document.model_validate(_DEMO_PAYLOAD)
