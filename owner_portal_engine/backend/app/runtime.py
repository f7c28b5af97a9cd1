# backend/app/runtime.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine

from .clients.primary import PrimaryClient
from .clients.secondary import SecondaryClient
from .config import Settings, settings as default_settings
from .db import init_db, make_engine, make_session_factory
from .services.calendar_service import CalendarService
from .services.compliance_engine import ComplianceEngine
from .services.portfolio import PortfolioAggregator
from .services.record_store import RecordStore, SqlRecordStore
from .services.reservation_reconciler import ReservationReconciler


@dataclass(frozen=True)
class Runtime:
    settings: Settings
    primary: PrimaryClient
    secondary: SecondaryClient
    store: RecordStore
    reconciler: ReservationReconciler
    compliance: ComplianceEngine
    portfolio: PortfolioAggregator
    calendar: CalendarService
    engine: Optional[AsyncEngine] = None

    async def aclose(self) -> None:
        if self.engine is not None:
            await self.engine.dispose()


async def build_runtime(settings: Optional[Settings] = None, *, store: Optional[RecordStore] = None) -> Runtime:
    """Wires the configured upstream clients and the SQL record store into the core services."""
    cfg = settings or default_settings

    engine: Optional[AsyncEngine] = None
    if store is None:
        engine = make_engine(cfg.database_url)
        await init_db(engine)
        store = SqlRecordStore(make_session_factory(engine))

    primary = PrimaryClient(
        base_url=cfg.primary_base_url, token=cfg.primary_token, timeout=cfg.upstream_timeout_seconds
    )
    secondary = SecondaryClient(
        base_url=cfg.secondary_base_url,
        api_key=cfg.secondary_api_key,
        account_id=cfg.secondary_account_id,
        timeout=cfg.upstream_timeout_seconds,
    )
    backoffice = secondary if secondary.enabled() else None
    reconciler = ReservationReconciler(primary, backoffice, settings=cfg)

    return Runtime(
        settings=cfg,
        primary=primary,
        secondary=secondary,
        store=store,
        reconciler=reconciler,
        compliance=ComplianceEngine(secondary, store, reconciler, settings=cfg),
        portfolio=PortfolioAggregator(reconciler, store, tourist_tax=backoffice, settings=cfg),
        calendar=CalendarService(primary, mirror=backoffice),
        engine=engine,
    )
