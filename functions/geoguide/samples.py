"""
Demo content for empty local stores.
"""

from __future__ import annotations

from geoguide.schemas import Tour

SAMPLE_TOURS = [
    {
        "id": "tour-1",
        "title": "Historic Paris Walk",
        "description": "A lovely walk through the heart of Paris covering major landmarks.",
        "authorId": "user-123",
        "stops": [
            {
                "id": "stop-1",
                "title": "Eiffel Tower",
                "description": "The Iron Lady of Paris. Built for the 1889 Exposition Universelle.",
                "location": {"lat": 48.8584, "lng": 2.2945},
                "mediaType": "image",
                "mediaUrl": "https://picsum.photos/id/1018/400/300",
            },
            {
                "id": "stop-2",
                "title": "Louvre Museum",
                "description": "The world's largest art museum and a historic monument in Paris.",
                "location": {"lat": 48.8606, "lng": 2.3376},
                "mediaType": "image",
                "mediaUrl": "https://picsum.photos/id/1015/400/300",
            },
        ],
    }
]


def sample_tours() -> list[Tour]:
    return [Tour.model_validate(item) for item in SAMPLE_TOURS]
