"""
Pytest configuration and shared fixtures for the note insights test suite.

Model factories build articles and snapshots with terse keyword overrides so
tests can describe sparse snapshot histories directly. Fixtures cover the
classification tags, a small mixed article set and the API client.
"""

import os
from datetime import date, datetime
from typing import Optional

import pytest
from fastapi.testclient import TestClient

# Set testing environment BEFORE importing app
os.environ["TESTING"] = "true"
os.environ.setdefault("LOG_FORMAT", "console")


from api.config import DEFAULT_PROPOSAL_CLASSIFICATION_NAME, get_settings
from api.models.articles import (
    Article,
    Classification,
    DailySnapshot,
    NoteData,
    SecondaryClassification,
    XConfirmedData,
    XPreliminaryData,
)
from api.models.kpis import Kpi


# ---------------------------------------------------------------------------
# Pydantic model factories, reusable across all test suites
# ---------------------------------------------------------------------------


def make_snapshot(
    on: date,
    views: Optional[float] = None,
    likes: Optional[float] = None,
    comments: Optional[float] = None,
    sales: Optional[float] = None,
    x_impressions: Optional[float] = None,
    x_likes: Optional[float] = None,
    confirmed_impressions: Optional[float] = None,
    confirmed_likes: Optional[float] = None,
    confirmed_engagements: Optional[float] = None,
    **preliminary,
) -> DailySnapshot:
    """
    Factory function for creating test DailySnapshot objects.

    A group is only attached when at least one of its fields is given, so
    ``make_snapshot(d, x_impressions=10)`` has no note_data at all.
    Extra keyword arguments (replies, retweets, quotes) go to the
    preliminary social group.
    """
    note_fields = dict(views=views, likes=likes, comments=comments, sales=sales)
    preliminary_fields = dict(impressions=x_impressions, likes=x_likes, **preliminary)
    confirmed_fields = dict(
        impressions=confirmed_impressions,
        likes=confirmed_likes,
        engagements=confirmed_engagements,
    )

    def group(model, fields):
        if all(v is None for v in fields.values()):
            return None
        return model(**fields)

    return DailySnapshot(
        snapshot_date=on,
        note_data=group(NoteData, note_fields),
        x_preliminary_data=group(XPreliminaryData, preliminary_fields),
        x_confirmed_data=group(XConfirmedData, confirmed_fields),
    )


def make_article(
    article_id: str = "a1",
    snapshots: Optional[list[DailySnapshot]] = None,
    classification_id: str = "",
    secondary_classification_id: Optional[str] = None,
    publication_date: Optional[datetime] = None,
    title: Optional[str] = None,
    url: str = "",
    **overrides,
) -> Article:
    """Factory function for creating test Article objects."""
    defaults = dict(
        id=article_id,
        title=title if title is not None else f"Article {article_id}",
        url=url,
        publication_date=publication_date,
        classification_id=classification_id,
        secondary_classification_id=secondary_classification_id,
        daily_snapshots=snapshots or [],
    )
    defaults.update(overrides)
    return Article(**defaults)


def make_kpi(
    expression: str,
    target_value: float = 0.0,
    kpi_id: str = "k1",
    kpi_name: str = "Test KPI",
) -> Kpi:
    """Factory function for creating test Kpi objects."""
    return Kpi(id=kpi_id, kpi_name=kpi_name, expression=expression, target_value=target_value)


def article_payload(article: Article) -> dict:
    """Serialize an article the way the upstream store hands it over."""
    return {
        "id": article.id,
        "title": article.title,
        "url": article.url,
        "publicationDate": article.publication_date.isoformat() if article.publication_date else None,
        "classificationId": article.classification_id,
        "secondaryClassificationId": article.secondary_classification_id,
        "isActive": article.is_active,
        "daily_snapshots": [
            {"id": s.snapshot_date.isoformat(), **s.model_dump(mode="json", exclude={"snapshot_date"}, exclude_none=True)}
            for s in article.daily_snapshots
        ],
    }


# ---------------------------------------------------------------------------
# Pytest fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Settings are cached process-wide; reset between tests."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def classifications():
    """Primary classification tags including the proposal tag."""
    return [
        Classification(id="c-free", name="無料記事"),
        Classification(id="c-paid", name=DEFAULT_PROPOSAL_CLASSIFICATION_NAME),
        Classification(id="c-empty", name="未使用"),
    ]


@pytest.fixture
def secondary_classifications():
    """Secondary classification tags."""
    return [
        SecondaryClassification(id="s-howto", name="ハウツー"),
        SecondaryClassification(id="s-diary", name="日記"),
        SecondaryClassification(id="s-unused", name="未使用"),
    ]


@pytest.fixture
def sample_articles():
    """
    Three articles over May 2024.

    a1: free, how-to, steady growth with preliminary social data
    a2: paid proposal, diary, confirmed social data and sales
    a3: unclassified, published mid-month
    """
    a1 = make_article(
        "a1",
        classification_id="c-free",
        secondary_classification_id="s-howto",
        url="https://note.com/u/n/a1",
        publication_date=datetime(2024, 4, 1, 9, 0),
        snapshots=[
            make_snapshot(date(2024, 4, 30), views=100, likes=10, comments=1, x_impressions=500, x_likes=5),
            make_snapshot(date(2024, 5, 10), views=150, likes=15, comments=2, x_impressions=800, x_likes=8),
            make_snapshot(date(2024, 5, 20), views=220, likes=20, comments=3),
        ],
    )
    a2 = make_article(
        "a2",
        classification_id="c-paid",
        secondary_classification_id="s-diary",
        url="https://note.com/u/n/a2",
        publication_date=datetime(2024, 4, 15, 12, 0),
        snapshots=[
            make_snapshot(date(2024, 4, 20), views=50, likes=2, comments=0),
            make_snapshot(
                date(2024, 5, 5),
                views=80,
                likes=6,
                comments=1,
                sales=2,
                x_impressions=300,
                x_likes=3,
                confirmed_impressions=400,
                confirmed_likes=4,
                confirmed_engagements=12,
            ),
            make_snapshot(date(2024, 5, 25), views=120, likes=9, comments=1, sales=1),
        ],
    )
    a3 = make_article(
        "a3",
        publication_date=datetime(2024, 5, 15, 8, 0),
        snapshots=[
            make_snapshot(date(2024, 5, 16), views=30, likes=1),
        ],
    )
    return [a1, a2, a3]


@pytest.fixture
def client():
    """FastAPI test client."""
    from api.main import app

    return TestClient(app)
