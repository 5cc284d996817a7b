"""
Pytest configuration and shared fixtures.
"""

from collections.abc import AsyncGenerator
from typing import Any

import pytest
import pytest_asyncio
import structlog
from lxml import html

from pagewatch.exceptions import FetchError
from pagewatch.models import Document, ExtractionRule, TargetNode


@pytest.fixture(autouse=True)
def reset_structlog() -> None:
    """Undo any logging configuration a previous test installed."""
    structlog.reset_defaults()


# =============================================================================
# Mock Redis (using fakeredis when available)
# =============================================================================


@pytest_asyncio.fixture
async def mock_redis() -> AsyncGenerator[Any, None]:
    """
    Provide a mock Redis client for testing.

    Uses fakeredis if available, otherwise skips tests requiring Redis.
    """
    try:
        import fakeredis.aioredis
    except ImportError:
        pytest.skip("fakeredis not installed")

    redis = fakeredis.aioredis.FakeRedis()
    yield redis
    await redis.aclose()


# =============================================================================
# Fake site
# =============================================================================


class FakeSite:
    """In-memory site serving parsed pages; records every fetch."""

    def __init__(self, pages: dict[str, str]):
        self.pages = pages
        self.fetched: list[str] = []
        self.failing: set[str] = set()

    async def fetch(self, url: str) -> Document:
        self.fetched.append(url)
        if url in self.failing or url not in self.pages:
            raise FetchError(url, "HTTP 404 Not Found", status_code=404)
        root = html.document_fromstring(self.pages[url], base_url=url)
        return Document(url=url, root=root, status_code=200)


@pytest.fixture
def fake_site() -> type[FakeSite]:
    """The FakeSite class, to be instantiated with a url -> html mapping."""
    return FakeSite


# =============================================================================
# Sample Data Fixtures
# =============================================================================


def catalog_page(products: list[tuple[str, str]], next_href: str | None = None) -> str:
    items = "\n".join(
        f'<li class="Product"><span class="Name">{name}</span>'
        f'<span class="Price">{price}</span></li>'
        for name, price in products
    )
    link = f'<a class="next" href="{next_href}">Next</a>' if next_href else ""
    return f"<html><body><ul>{items}</ul>{link}</body></html>"


@pytest.fixture
def catalog_pages() -> dict[str, str]:
    """Two catalog pages, the first continuing to the second."""
    return {
        "https://shop.example.com/p1": catalog_page(
            [("Widget", "9.99"), ("Gadget", "19.99")], next_href="/p2"
        ),
        "https://shop.example.com/p2": catalog_page(
            [("Doohickey", "4.50"), ("Gizmo", "7.25")]
        ),
    }


@pytest.fixture
def product_targets() -> TargetNode:
    """Target tree extracting Product items with Name and Price."""
    return TargetNode(
        name="Product",
        path="//li[@class='Product']",
        then={
            "Name": TargetNode(
                name="Name",
                path="span[@class='Name']",
                extract=ExtractionRule.TEXT,
            ),
            "Price": TargetNode(
                name="Price",
                path="span[@class='Price']",
                extract=ExtractionRule.TEXT,
            ),
        },
    )


@pytest.fixture
def sample_html_article() -> str:
    """Sample article HTML for extraction testing."""
    return """
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <title>Sample Article Title</title>
    <meta name="author" content="John Doe">
</head>
<body>
    <main>
        <article>
            <h1>Sample Article Title</h1>
            <div class="meta">
                <span class="author">John Doe</span>
                <time datetime="2025-01-15">January 15, 2025</time>
            </div>
            <div class="content">
                <p>First paragraph.</p>
                <p>Second <b>bold</b> paragraph.</p>
                <p>Third paragraph.</p>
            </div>
        </article>
    </main>
</body>
</html>
    """.strip()
