"""Resolution of rotation entries to live browser tabs."""

import logging
from collections.abc import Sequence

from ..browser.base import BrowserEnvironment, BrowserError, TabNotFoundError
from ..settings.models import RotationEntry
from .exceptions import ProvisionFailed
from .registry import TabRegistry, urls_match

logger = logging.getLogger(__name__)


class TabProvisioner:
    """Finds or opens the tab for an entry, keeping the registry up to date.

    Lookup order, first match wins:
        1. The tab bound in the registry, if the browser still has it
        2. Any open tab showing the entry's URL
        3. A new background tab
    """

    def __init__(self, browser: BrowserEnvironment, registry: TabRegistry) -> None:
        self.browser = browser
        self.registry = registry

    async def ensure_tab(self, entry: RotationEntry) -> str:
        """Return the id of a live tab for entry.

        Raises:
            ProvisionFailed: If the browser cannot list or create tabs
        """
        url = entry.url

        tab_id = self.registry.resolve(url)
        if tab_id is not None:
            try:
                await self.browser.get_tab(tab_id)
                logger.debug(f"Reusing bound tab {tab_id} for {url}")
                return tab_id
            except TabNotFoundError:
                logger.debug(f"Bound tab {tab_id} for {url} is gone")
                self.registry.unbind(url)
            except BrowserError as e:
                raise ProvisionFailed(url, str(e)) from e

        try:
            open_tabs = await self.browser.list_open_tabs()
        except BrowserError as e:
            raise ProvisionFailed(url, str(e)) from e

        for tab in open_tabs:
            if urls_match(tab.url, url):
                logger.debug(f"Found open tab {tab.id} for {url}")
                self.registry.bind(url, tab.id)
                return tab.id

        try:
            tab = await self.browser.create_tab(url, active=False)
        except BrowserError as e:
            raise ProvisionFailed(url, str(e)) from e

        logger.info(f"Opened background tab {tab.id} for {url}")
        self.registry.bind(url, tab.id)
        return tab.id

    async def scan_existing(self, entries: Sequence[RotationEntry]) -> int:
        """Bind already-open tabs to the entries they show.

        Returns:
            Number of entries matched to an existing tab
        """
        try:
            open_tabs = await self.browser.list_open_tabs()
        except BrowserError as e:
            logger.warning(f"Existing tab scan failed: {e}")
            return 0

        found = 0
        for entry in entries:
            if self.registry.resolve(entry.url) is not None:
                continue
            for tab in open_tabs:
                if urls_match(tab.url, entry.url):
                    self.registry.bind(entry.url, tab.id)
                    found += 1
                    break
        return found
