"""Tracking of which browser tab currently shows which rotation URL."""

import logging
from typing import Optional

logger = logging.getLogger(__name__)

FILE_SCHEME = "file://"


def normalize_url(url: str) -> str:
    """Normalize file:// URLs so platform path differences compare equal.

    File URLs are lower-cased and backslashes become forward slashes; any
    other URL is returned unchanged.
    """
    if not url.startswith(FILE_SCHEME):
        return url
    return url.lower().replace("\\", "/")


def urls_match(tab_url: Optional[str], target_url: Optional[str]) -> bool:
    """Return True if a tab showing tab_url satisfies an entry for target_url."""
    if not tab_url or not target_url:
        return False

    if tab_url == target_url:
        return True

    if tab_url.startswith(FILE_SCHEME) and target_url.startswith(FILE_SCHEME):
        return normalize_url(tab_url) == normalize_url(target_url)

    return False


class TabRegistry:
    """Cache of URL to tab id bindings.

    The browser owns the tabs; this registry only remembers which tab was last
    seen showing an entry's URL. Bindings go stale when tabs close and are
    purged either on a tab-closed notification or lazily when a lookup
    finds the tab missing.
    """

    def __init__(self) -> None:
        self._bindings: dict[str, str] = {}

    def resolve(self, url: str) -> Optional[str]:
        """Return the tab id bound to url, or None.

        Exact matches win; otherwise a file URL matches a binding whose
        normalized form is equal.
        """
        tab_id = self._bindings.get(url)
        if tab_id is not None:
            return tab_id

        if url.startswith(FILE_SCHEME):
            normalized = normalize_url(url)
            for bound_url, bound_id in self._bindings.items():
                if bound_url.startswith(FILE_SCHEME) and normalize_url(bound_url) == normalized:
                    return bound_id

        return None

    def bind(self, url: str, tab_id: str) -> None:
        previous = self._bindings.get(url)
        if previous is not None and previous != tab_id:
            logger.debug(f"Rebinding {url}: {previous} -> {tab_id}")
        self._bindings[url] = tab_id

    def unbind(self, url: str) -> None:
        """Remove the binding for url and any normalized-equal file URL."""
        self._bindings.pop(url, None)
        if url.startswith(FILE_SCHEME):
            for bound_url in [u for u in self._bindings if urls_match(u, url)]:
                del self._bindings[bound_url]

    def invalidate_if_missing(self, tab_id: str) -> list[str]:
        """Purge every binding to a closed tab.

        Returns:
            URLs that were bound to the tab
        """
        purged = [url for url, bound_id in self._bindings.items() if bound_id == tab_id]
        for url in purged:
            del self._bindings[url]
        if purged:
            logger.debug(f"Purged bindings for closed tab {tab_id}: {purged}")
        return purged

    def bindings(self) -> dict[str, str]:
        return dict(self._bindings)
