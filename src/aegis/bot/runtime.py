"""
Runtime services shared by the cogs.

Everything stateful (database, settings store, case log, automod engine) is
built once at startup by :meth:`AegisRuntime.build` and handed to each cog's
``setup``. Nothing here is a module-level singleton, so tests can build a
runtime around fakes or a temporary database.
"""

from __future__ import annotations

from dataclasses import dataclass

from aegis.automod.action_executor import ModerationActionExecutor
from aegis.automod.config_cache import GuildConfigCache
from aegis.automod.decision_engine import AutomodEngine
from aegis.automod.policy_matcher import PolicyMatcher
from aegis.automod.spam_tracker import SpamRateTracker
from aegis.configuration.app_configuration import AutomodSettings
from aegis.configuration.guild_settings import GuildSettingsStore
from aegis.database.case_log import ModerationCaseLog
from aegis.database.database import Database
from aegis.moderation.mod_log import ModLogNotifier
from aegis.util.clock import Clock, system_clock
from aegis.util.logger import get_logger

logger = get_logger("runtime")


@dataclass
class AegisRuntime:
    database: Database
    settings: GuildSettingsStore
    case_log: ModerationCaseLog
    mod_log: ModLogNotifier
    engine: AutomodEngine

    @classmethod
    def build(
        cls,
        database: Database,
        automod_settings: AutomodSettings | None = None,
        clock: Clock = system_clock,
    ) -> "AegisRuntime":
        """Wire the automod pipeline and stores around an initialized database."""
        automod_settings = automod_settings or AutomodSettings()
        settings = GuildSettingsStore(database)
        case_log = ModerationCaseLog(database)
        mod_log = ModLogNotifier(settings)

        engine = AutomodEngine(
            config_cache=GuildConfigCache(settings, ttl_ms=automod_settings.config_cache_ttl_ms, clock=clock),
            spam_tracker=SpamRateTracker(
                threshold=automod_settings.spam_threshold,
                window_ms=automod_settings.spam_window_ms,
                sweep_interval=automod_settings.sweep_interval_seconds,
                clock=clock,
            ),
            matcher=PolicyMatcher(),
            executor=ModerationActionExecutor(
                case_log,
                mod_log,
                timeout_ms=automod_settings.spam_timeout_ms,
                notice_delete_after=automod_settings.notice_delete_after_seconds,
            ),
            clock=clock,
        )
        logger.debug("[RUNTIME] Built runtime with %s", automod_settings)
        return cls(database=database, settings=settings, case_log=case_log, mod_log=mod_log, engine=engine)

    def start(self) -> None:
        """Start background work. Must be called from a running event loop."""
        self.engine.spam_tracker.start()

    async def shutdown(self) -> None:
        try:
            await self.engine.shutdown()
        except Exception as exc:
            logger.exception("[RUNTIME] Error stopping automod engine: %s", exc)
        try:
            await self.database.shutdown()
        except Exception as exc:
            logger.exception("[RUNTIME] Error closing database: %s", exc)
        logger.info("[RUNTIME] Runtime shutdown complete")
