"""Helpers for the ``links`` objects in Bitbucket Server responses."""

from typing import Any

from bbpublish.exceptions import LinkNotFound


def find_link(links: list[dict[str, Any]], name: str) -> str:
    """
    Return the ``href`` of the link whose ``name`` equals ``name``.

    When several links share the name, the last one wins.

    Raises:
        LinkNotFound: If no link carries that name
    """
    href = None
    for link in links:
        if isinstance(link, dict) and link.get("name") == name and link.get("href"):
            href = link["href"]
    if href is None:
        raise LinkNotFound(f"No '{name}' link in {[link.get('name') for link in links if isinstance(link, dict)]}")
    return href


def clone_url(data: dict[str, Any]) -> str:
    """HTTP clone URL of a repository payload."""
    return find_link(data["links"]["clone"], "http")


def self_url(data: dict[str, Any]) -> str:
    """First ``self`` link of a payload."""
    href = data["links"]["self"][0]["href"]
    if not href:
        raise LinkNotFound("Empty 'self' link")
    return href
