from datetime import datetime, timezone
from hashlib import sha1

from fastapi import FastAPI
from pydantic import BaseModel

from fastapi_freshness import (
    CachePolicyBuilder,
    Freshness,
    FreshnessDepends,
    freshness_shield,
)

app = FastAPI()

policy = (
    CachePolicyBuilder()
    .cache_control("public", "must_revalidate", max_age=60)
    .cache_control("private", "no_cache", actions=["update_article"])
    .expires(300, "public", actions=["list_articles"])
    .build()
)


class Article(BaseModel):
    slug: str
    body: str
    updated_at: datetime


ARTICLES = {
    "hello": Article(
        slug="hello",
        body="Hello, world",
        updated_at=datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc),
    ),
}


def digest(article: Article) -> str:
    return sha1(article.body.encode()).hexdigest()[:16]


@app.get("/articles")
@freshness_shield(policy)
def list_articles():
    return {"articles": sorted(ARTICLES)}


@app.get("/articles/{slug}")
@freshness_shield(policy)
def show_article(slug: str, freshness: Freshness):
    article = ARTICLES[slug]
    freshness.last_modified(article.updated_at)
    freshness.etag(digest(article))
    return article


@app.put("/articles/{slug}")
@freshness_shield(policy)
def update_article(slug: str, article: Article, freshness: Freshness):
    # `If-Match` guards against lost updates
    freshness.etag(digest(ARTICLES[slug]))
    ARTICLES[slug] = article
    return article


@app.get("/articles/{slug}/summary")
def article_summary(slug: str, freshness: Freshness = FreshnessDepends(policy)):
    article = ARTICLES[slug]
    freshness.etag(digest(article), "weak")
    return {"slug": slug, "summary": article.body[:5]}
