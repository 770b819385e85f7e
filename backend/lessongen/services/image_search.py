"""Pexels photo search — a handful of landscape images per lesson, best effort."""

import logging

import httpx

from lessongen.config import settings

logger = logging.getLogger(__name__)

IMAGE_QUERY_WORDS = 5
IMAGES_PER_LESSON = 3


def image_query(outline: str) -> str:
    """Derive the search query from the first few words of the outline."""
    return " ".join(outline.split()[:IMAGE_QUERY_WORDS])


def extract_image_urls(response_json: dict) -> list[str]:
    urls = []
    for photo in response_json.get("photos") or []:
        if not isinstance(photo, dict):
            continue
        url = (photo.get("src") or {}).get("large")
        if url:
            urls.append(url)
    return urls


async def search_images(
    client: httpx.AsyncClient,
    api_key: str,
    query: str,
    per_page: int = IMAGES_PER_LESSON,
) -> list[str]:
    """Return "large" image URLs for a query. Never raises."""
    if not api_key or not query:
        return []
    try:
        response = await client.get(
            f"{settings.PEXELS_BASE_URL.rstrip('/')}/search",
            params={"query": query, "per_page": per_page, "orientation": "landscape"},
            headers={"Authorization": api_key},
        )
        response.raise_for_status()
        data = response.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.warning("Image search failed for %r: %s", query, e)
        return []
    if not isinstance(data, dict):
        return []
    return extract_image_urls(data)
