"""
Tests for provider payload normalization.

These use recorded-style payloads to verify parsing logic without network access.
"""

from datetime import datetime, timezone

from newsdesk.models.domain import parse_author_names
from newsdesk.sources import GuardianProvider, NewsAPIProvider, NewYorkTimesProvider


SAMPLE_NEWSAPI_RESPONSE = {
    "status": "ok",
    "totalResults": 3,
    "articles": [
        {
            "source": {"id": "bbc-news", "name": "BBC News"},
            "author": "John Doe, Jane Smith",
            "title": "Test Article 1",
            "description": "Description 1",
            "url": "https://example.com/1",
            "urlToImage": "https://example.com/image1.jpg",
            "publishedAt": "2025-02-14T09:00:00Z",
            "content": "Content 1",
        },
        {
            "source": {"id": None, "name": "Yahoo Entertainment"},
            "author": None,
            "title": "[Removed]",
            "description": "[Removed]",
            "url": "https://removed.com",
            "urlToImage": None,
            "publishedAt": "2025-02-14T08:00:00Z",
            "content": "[Removed]",
        },
        {
            "source": {"id": None, "name": "Broken"},
            "title": "No date",
            "url": "https://example.com/no-date",
        },
    ],
}

SAMPLE_GUARDIAN_RESPONSE = {
    "response": {
        "status": "ok",
        "results": [
            {
                "id": "world/2025/feb/14/story",
                "sectionName": "World news",
                "webPublicationDate": "2025-02-14T07:30:00Z",
                "webTitle": "A World Story",
                "webUrl": "https://www.theguardian.com/world/2025/feb/14/story",
                "fields": {
                    "trailText": "Trail text",
                    "bodyText": "Body text",
                    "byline": "Alice Reporter",
                    "publication": "The Observer",
                    "thumbnail": "https://media.guim.co.uk/thumb.jpg",
                },
            },
        ],
    }
}

SAMPLE_NYTIMES_RESPONSE = {
    "status": "OK",
    "response": {
        "docs": [
            {
                "abstract": "An abstract.",
                "web_url": "https://www.nytimes.com/2025/02/14/us/story.html",
                "lead_paragraph": "The lead paragraph.",
                "multimedia": [
                    {"url": "images/2025/02/14/photo.jpg", "subtype": "xlarge"},
                ],
                "headline": {"main": "An NYT Story"},
                "pub_date": "2025-02-14T05:00:00+0000",
                "news_desk": "National",
                "section_name": "U.S.",
                "byline": {"original": "By Jane Doe and John Roe"},
            },
            {
                "web_url": "https://www.nytimes.com/2025/02/14/briefing.html",
                "headline": {"main": "Briefing"},
                "pub_date": "2025-02-14T04:00:00-0500",
                "byline": {"original": None},
            },
        ]
    },
}


class TestAuthorParsing:
    """Tests for splitting raw author fields."""

    def test_trims_and_drops_empty_entries(self):
        assert parse_author_names("  John Doe  ,  Jane Smith ") == ["John Doe", "Jane Smith"]
        assert parse_author_names("John Doe, , Jane Smith,") == ["John Doe", "Jane Smith"]

    def test_empty_values(self):
        assert parse_author_names(None) == []
        assert parse_author_names("") == []
        assert parse_author_names(" , ") == []

    def test_duplicates_are_collapsed(self):
        assert parse_author_names("Jane Smith, Jane Smith") == ["Jane Smith"]


class TestNewsAPIProvider:
    """Tests for NewsAPI normalization."""

    def test_normalize(self):
        records = NewsAPIProvider().normalize(SAMPLE_NEWSAPI_RESPONSE)

        # [Removed] item dropped, undated item skipped
        assert len(records) == 1

        record = records[0]
        assert record.title == "Test Article 1"
        assert record.url == "https://example.com/1"
        assert record.source_label == "NewsAPI - BBC News"
        assert record.image_url == "https://example.com/image1.jpg"
        assert record.author_names == ["John Doe", "Jane Smith"]
        assert record.category_name is None
        assert record.published_at == datetime(2025, 2, 14, 9, 0, tzinfo=timezone.utc)

    def test_empty_payload(self):
        assert NewsAPIProvider().normalize({}) == []

    def test_non_dict_items_are_skipped(self):
        payload = {"articles": [None, "x", 3, SAMPLE_NEWSAPI_RESPONSE["articles"][0]]}

        records = NewsAPIProvider().normalize(payload)

        assert [r.url for r in records] == ["https://example.com/1"]

    def test_unexpected_container_shapes(self):
        assert NewsAPIProvider().normalize({"articles": "not a list"}) == []
        assert NewsAPIProvider().normalize([]) == []

    def test_request_shape(self):
        provider = NewsAPIProvider()
        assert provider.base_url + provider.endpoint == "https://newsapi.org/v2/top-headlines"
        assert provider.credential_param == "apiKey"
        assert provider.default_params() == {"language": "en"}


class TestGuardianProvider:
    """Tests for Guardian normalization."""

    def test_normalize(self):
        records = GuardianProvider().normalize(SAMPLE_GUARDIAN_RESPONSE)

        assert len(records) == 1
        record = records[0]
        assert record.title == "A World Story"
        assert record.description == "Trail text"
        assert record.content == "Body text"
        assert record.source_label == "The Guardian - The Observer"
        assert record.image_url == "https://media.guim.co.uk/thumb.jpg"
        assert record.author_names == ["Alice Reporter"]
        assert record.category_name == "World news"

    def test_missing_required_fields_are_skipped(self):
        payload = {"response": {"results": [{"webTitle": "No URL"}]}}
        assert GuardianProvider().normalize(payload) == []

    def test_unexpected_container_shapes(self):
        assert GuardianProvider().normalize({"response": ["oops"]}) == []
        assert GuardianProvider().normalize({"response": {"results": {"a": 1}}}) == []

    def test_nested_fields_of_wrong_type_are_skipped(self):
        item = dict(SAMPLE_GUARDIAN_RESPONSE["response"]["results"][0], fields="oops")
        assert GuardianProvider().normalize({"response": {"results": [item]}}) == []


class TestNewYorkTimesProvider:
    """Tests for NYT normalization."""

    def test_normalize(self):
        records = NewYorkTimesProvider().normalize(SAMPLE_NYTIMES_RESPONSE)

        assert len(records) == 2

        record = records[0]
        assert record.title == "An NYT Story"
        assert record.source_label == "The New York Times"
        assert record.author_names == ["Jane Doe", "John Roe"]
        assert record.category_name == "National"
        assert record.image_url == "https://www.nytimes.com/images/2025/02/14/photo.jpg"
        assert record.published_at == datetime(2025, 2, 14, 5, 0, tzinfo=timezone.utc)

    def test_unexpected_container_shapes(self):
        assert NewYorkTimesProvider().normalize({"response": None}) == []
        assert NewYorkTimesProvider().normalize({"response": {"docs": [None, "doc"]}}) == []

    def test_defaults_for_sparse_items(self):
        record = NewYorkTimesProvider().normalize(SAMPLE_NYTIMES_RESPONSE)[1]

        assert record.author_names == []
        assert record.category_name == "Uncategorized"
        assert record.image_url is None
        # Offsets are normalized to UTC
        assert record.published_at == datetime(2025, 2, 14, 9, 0, tzinfo=timezone.utc)
