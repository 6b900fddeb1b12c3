"""Shared fixtures for N-gram Insights tests."""

import pytest

from ngram_insights.cache import AnalysisCache
from ngram_insights.config import AnalysisSettings
from ngram_insights.models import SearchTermRow


def make_row(search_term: str, cost: float = 0.0, clicks: int = 0, impressions: int = 0,
             conversions: float = 0.0, conversion_value: float = 0.0,
             campaign_name: str = "Sofas", campaign_id: str = "111",
             device: str = None) -> SearchTermRow:
    """Build a search term row with sensible defaults."""
    return SearchTermRow(
        search_term=search_term,
        cost=cost,
        clicks=clicks,
        impressions=impressions,
        conversions=conversions,
        conversion_value=conversion_value,
        campaign_name=campaign_name,
        campaign_id=campaign_id,
        device=device,
    )


class FakeClock:
    """Manually advanced time source for cache tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def sofa_rows():
    """The two-row sofa example: 'corner sofa' shared by both terms."""
    return [
        make_row("modern corner sofa", cost=40, clicks=10, impressions=200),
        make_row("corner sofa bed", cost=30, clicks=8, impressions=150),
    ]


@pytest.fixture
def mixed_rows():
    """Brand, dimension, converting and wasteful terms across two campaigns."""
    return [
        make_row("acme corner sofa", cost=50, clicks=20, impressions=400,
                 conversions=2, conversion_value=400, campaign_name="Brand", campaign_id="1"),
        make_row("acme sofa bed", cost=30, clicks=10, impressions=200,
                 conversions=1, conversion_value=150, campaign_name="Brand", campaign_id="1"),
        make_row("grey corner sofa", cost=60, clicks=15, impressions=500,
                 conversions=2, conversion_value=300, campaign_name="Sofas", campaign_id="2"),
        make_row("velvet corner sofa", cost=20, clicks=6, impressions=300,
                 conversions=1, conversion_value=120, campaign_name="Sofas", campaign_id="2"),
        make_row("free sofa", cost=45, clicks=12, impressions=600, campaign_name="Sofas", campaign_id="2"),
        make_row("free sofa", cost=25, clicks=6, impressions=300, campaign_name="Generic", campaign_id="3"),
        make_row("free sofa collection", cost=8, clicks=4, impressions=90,
                 campaign_name="Generic", campaign_id="3"),
        make_row("120x200 sofa", cost=12, clicks=4, impressions=100, campaign_name="Sofas", campaign_id="2"),
        make_row("120x200 bed", cost=6, clicks=3, impressions=80, campaign_name="Sofas", campaign_id="2"),
    ]


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def client(tmp_path, monkeypatch):
    """Flask test client writing to temporary folders with a fresh cache."""
    from app import app

    upload_dir = tmp_path / "uploads"
    output_dir = tmp_path / "outputs"
    upload_dir.mkdir()
    output_dir.mkdir()

    monkeypatch.setitem(app.config, 'UPLOAD_FOLDER', str(upload_dir))
    monkeypatch.setitem(app.config, 'OUTPUT_FOLDER', str(output_dir))
    monkeypatch.setitem(app.config, 'ANALYSIS_CACHE', AnalysisCache())
    monkeypatch.setitem(app.config, 'ANALYSIS_SETTINGS', AnalysisSettings())
    app.config['TESTING'] = True

    with app.test_client() as test_client:
        yield test_client
