"""Shared configuration for route modules."""

from dataclasses import dataclass, field

from flask import Flask, current_app

from ticobot.api.async_runner import EventLoopThread
from ticobot.constants import CHAT_MAX_CONTEXT_LENGTH
from ticobot.factory import ProviderFactory
from ticobot.rag.pipeline import RAGPipeline
from ticobot.rag.stats import TOONStatsTracker
from ticobot.service.cache import AnswerCache
from ticobot.service.database.base import DatabaseProvider

CONFIG_KEY = "ROUTE_CONFIG"


@dataclass
class RouteConfig:
    """Configuration container for Flask route dependencies.

    Providers are built on first use so the app starts even when a vendor
    credential is missing; the failing request reports the error instead.
    Tests may assign pipeline, cache or database directly.
    """

    factory: ProviderFactory = field(default_factory=ProviderFactory)
    runner: EventLoopThread = field(default_factory=EventLoopThread)
    stats: TOONStatsTracker = field(default_factory=TOONStatsTracker)
    pipeline: RAGPipeline | None = None
    cache: AnswerCache | None = None
    database: DatabaseProvider | None = None

    def get_pipeline(self) -> RAGPipeline:
        if self.pipeline is None:
            self.pipeline = RAGPipeline.from_factory(
                self.factory, stats=self.stats, max_context_length=CHAT_MAX_CONTEXT_LENGTH
            )
        return self.pipeline

    def get_cache(self) -> AnswerCache:
        if self.cache is None:
            self.cache = self.factory.get_answer_cache()
        return self.cache

    def get_database(self) -> DatabaseProvider:
        if self.database is None:
            self.database = self.factory.get_database_provider()
        return self.database


def init_config(app: Flask, config: RouteConfig) -> None:
    """Attach the route configuration to an application."""
    app.config[CONFIG_KEY] = config


def get_config() -> RouteConfig:
    """Get the route configuration of the current application.

    Returns:
        RouteConfig instance with current settings
    """
    return current_app.config[CONFIG_KEY]
