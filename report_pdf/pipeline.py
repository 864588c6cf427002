"""
Render pipeline - composed HTML to PDF bytes using Playwright/Chromium.

Stages run strictly in order: acquire -> open -> load -> export -> release.
Every browser that is acquired is released on every exit path, and a
cleanup failure never replaces the result (or error) already determined.
"""

import asyncio
import time
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from .observability import (
    OUTCOME_CLEANUP_ERROR,
    OUTCOME_ERROR,
    OUTCOME_OK,
    StageEvent,
    StageObserver,
    null_observer,
)

STAGE_ACQUIRE = "acquire"
STAGE_OPEN = "open"
STAGE_LOAD = "load"
STAGE_EXPORT = "export"
STAGE_RELEASE = "release"


class WaitStrategy(str, Enum):
    """
    When the loaded document counts as settled.

    NETWORK_IDLE waits for remote logos/fonts but can stall on hosts that keep
    connections open. LOAD is faster and never stalls on idle connections, but
    a slow remote image may still be loading; a short settle delay covers most
    of that. Both are bounded by RenderOptions.load_timeout_ms.
    """

    NETWORK_IDLE = "networkidle"
    LOAD = "load"


class RenderError(Exception):
    """A pipeline stage failed."""

    def __init__(self, stage: str, message: str):
        super().__init__(message)
        self.stage = stage


class BrowserLaunchError(RenderError):
    """Chromium could not be started."""


class RenderTimeoutError(RenderError):
    """A bounded wait ran out."""


@dataclass(frozen=True)
class RenderOptions:
    wait_strategy: WaitStrategy = WaitStrategy.LOAD
    load_timeout_ms: int = 15000
    settle_delay_ms: int = 250
    export_timeout_ms: int = 30000
    release_timeout_ms: int = 5000
    pdf_format: str = "A4"
    headless: bool = True
    executable_path: Optional[str] = None
    launch_args: Tuple[str, ...] = ()

    @classmethod
    def from_settings(cls, settings) -> "RenderOptions":
        return cls(
            wait_strategy=WaitStrategy(settings.wait_strategy),
            load_timeout_ms=settings.load_timeout_ms,
            settle_delay_ms=settings.settle_delay_ms,
            export_timeout_ms=settings.export_timeout_ms,
            release_timeout_ms=settings.release_timeout_ms,
            pdf_format=settings.pdf_format,
            headless=settings.playwright_headless,
            executable_path=settings.chromium_executable_path,
            launch_args=tuple(settings.chromium_args_list),
        )

    def launch_kwargs(self) -> dict:
        kwargs = {"headless": self.headless}
        if self.launch_args:
            kwargs["args"] = list(self.launch_args)
        if self.executable_path:
            kwargs["executable_path"] = self.executable_path
        return kwargs


class RenderPipeline:
    """
    One-shot HTML to PDF renderer.

    Each render() call launches its own browser and tears it down before
    returning; nothing is shared between calls.
    """

    def __init__(self, options: Optional[RenderOptions] = None,
                 observer: Optional[StageObserver] = None):
        self.options = options or RenderOptions()
        self.observer = observer or null_observer

    async def render(self, html: str) -> bytes:
        """
        Render a complete HTML document to PDF bytes.

        Raises:
            BrowserLaunchError: Chromium failed to start
            RenderTimeoutError: load or export exceeded its bound
            RenderError: any other load/export failure
        """
        # Import here to avoid loading Playwright on startup
        from playwright.async_api import async_playwright
        from playwright.async_api import TimeoutError as PlaywrightTimeoutError

        timeouts = (PlaywrightTimeoutError, asyncio.TimeoutError)
        options = self.options
        playwright = browser = page = None

        try:
            with self._stage(STAGE_ACQUIRE, timeouts):
                playwright = await async_playwright().start()
                browser = await playwright.chromium.launch(**options.launch_kwargs())

            with self._stage(STAGE_OPEN, timeouts):
                page = await browser.new_page()

            with self._stage(STAGE_LOAD, timeouts):
                await page.set_content(
                    html,
                    wait_until=options.wait_strategy.value,
                    timeout=options.load_timeout_ms,
                )
                if options.wait_strategy is WaitStrategy.LOAD and options.settle_delay_ms:
                    await page.wait_for_timeout(options.settle_delay_ms)

            with self._stage(STAGE_EXPORT, timeouts):
                pdf_bytes = await asyncio.wait_for(
                    page.pdf(
                        format=options.pdf_format,
                        print_background=True,
                        prefer_css_page_size=True,
                    ),
                    timeout=options.export_timeout_ms / 1000,
                )
        finally:
            await self._release(page, browser, playwright)

        return pdf_bytes

    @contextmanager
    def _stage(self, name: str, timeouts: tuple):
        started = time.perf_counter()
        try:
            yield
        except RenderError:
            raise
        except Exception as exc:
            self._emit(name, started, OUTCOME_ERROR, exc)
            raise _as_render_error(name, exc, timeouts) from exc
        self._emit(name, started, OUTCOME_OK)

    async def _release(self, page, browser, playwright) -> None:
        # Page, then browser, then the driver; each step is bounded and runs even if the last failed.
        started = time.perf_counter()
        steps = (
            ("page", page, "close"),
            ("browser", browser, "close"),
            ("driver", playwright, "stop"),
        )
        clean = True
        for label, resource, method in steps:
            if resource is None:
                continue
            try:
                await asyncio.wait_for(
                    getattr(resource, method)(),
                    timeout=self.options.release_timeout_ms / 1000,
                )
            except Exception as exc:
                clean = False
                self._emit(f"{STAGE_RELEASE}:{label}", started, OUTCOME_CLEANUP_ERROR, exc)
        self._emit(STAGE_RELEASE, started, OUTCOME_OK if clean else OUTCOME_CLEANUP_ERROR)

    def _emit(self, stage: str, started: float, outcome: str,
              exc: Optional[BaseException] = None) -> None:
        event = StageEvent(
            stage=stage,
            duration_ms=(time.perf_counter() - started) * 1000,
            outcome=outcome,
            error=f"{type(exc).__name__}: {exc}" if exc is not None else None,
        )
        self.observer(event)


def _as_render_error(stage: str, exc: Exception, timeouts: tuple) -> RenderError:
    if isinstance(exc, timeouts):
        return RenderTimeoutError(stage, f"{stage} timed out")
    if stage == STAGE_ACQUIRE:
        return BrowserLaunchError(stage, f"Browser launch failed: {exc}")
    return RenderError(stage, f"{stage} failed: {exc}")
