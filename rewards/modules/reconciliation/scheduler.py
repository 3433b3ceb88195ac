import asyncio
import logging
from rewards.config.settings import settings
from rewards.database.supabase_client import SupabaseClient
from rewards.modules.reconciliation.service import ReconciliationService

logger = logging.getLogger(__name__)


async def reconcile_once():
    """Run one reconciliation sweep off the event loop"""
    try:
        service = ReconciliationService(SupabaseClient.get_service_client())
        report = await asyncio.to_thread(service.run)
        if report.failures:
            logger.warning(f"Reconciliation sweep left {len(report.failures)} identities unrepaired")
    except Exception as e:
        logger.error(f"Error in reconciliation sweep: {str(e)}")


async def reconciliation_loop():
    """Background task that periodically repairs orphaned identities"""
    interval = settings.reconcile_interval_seconds
    while True:
        await reconcile_once()
        await asyncio.sleep(interval)
