"""
Background SLA processing job

Every tick refreshes the SLA of each active complaint and escalates the ones
that have been overdue long enough. The timer and the manual trigger share
one evaluation routine and one lock, so two passes never overlap.
"""
import asyncio
from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Callable, List, Optional, Tuple
import logging

from sqlalchemy.orm import Session

from app.core.clock import as_utc, utcnow
from app.core.config import settings
from app.core.database import SessionLocal
from app.models.complaint import Complaint, ACTIVE_STATUSES
from app.services.escalation_engine import EscalationEngine
from app.services.sla_calculator import SLACalculator

logger = logging.getLogger(__name__)

JOB_NAME = "sla_processing"


@dataclass
class BatchResult:
    updated_count: int = 0
    escalated_count: int = 0
    failed_count: int = 0
    skipped: bool = False

    def as_dict(self) -> dict:
        return asdict(self)


class SLABatchScheduler:
    """Periodic SLA refresh and escalation over all active complaints"""

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        interval_minutes: Optional[int] = None,
        max_workers: Optional[int] = None
    ):
        self.session_factory = session_factory
        self.interval_minutes = interval_minutes or settings.SLA_SCHEDULER_INTERVAL_MINUTES
        self.max_workers = max(1, max_workers or settings.SLA_BATCH_MAX_WORKERS)
        self.sla_calculator = SLACalculator()
        self._lock = asyncio.Lock()
        self._task: Optional[asyncio.Task] = None
        self.last_run_at: Optional[datetime] = None
        self.last_result: Optional[BatchResult] = None

    def _active_complaint_ids(self) -> List[int]:
        db = self.session_factory()
        try:
            rows = db.query(Complaint.id).filter(
                Complaint.status.in_(ACTIVE_STATUSES)
            ).order_by(Complaint.id.asc()).all()
            return [row.id for row in rows]
        finally:
            db.close()

    def evaluate_complaint(self, complaint_id: int, now: datetime) -> Tuple[bool, bool]:
        """
        Refresh SLA then check escalation for one complaint, in its own session.

        Returns (updated, escalated). The commit is guarded by the complaint's
        version counter, so a concurrent writer makes this raise instead of
        silently overwriting.
        """
        db = self.session_factory()
        try:
            complaint = db.get(Complaint, complaint_id)
            if complaint is None or complaint.is_terminal:
                return False, False

            self.sla_calculator.refresh(complaint, now)

            escalated = False
            if complaint.sla_is_overdue:
                engine = EscalationEngine(db)
                decision = engine.evaluate(complaint, now)
                if decision is not None:
                    engine.escalate(complaint, decision)
                    escalated = True

            db.commit()
            return True, escalated
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    async def _evaluate_all(self, now: datetime) -> BatchResult:
        complaint_ids = await asyncio.to_thread(self._active_complaint_ids)
        semaphore = asyncio.Semaphore(self.max_workers)
        result = BatchResult()

        async def worker(complaint_id: int):
            async with semaphore:
                try:
                    updated, escalated = await asyncio.to_thread(self.evaluate_complaint, complaint_id, now)
                except Exception as e:
                    result.failed_count += 1
                    logger.error(f"SLA processing failed for complaint {complaint_id}: {str(e)}")
                    return
            if updated:
                result.updated_count += 1
            if escalated:
                result.escalated_count += 1

        await asyncio.gather(*(worker(complaint_id) for complaint_id in complaint_ids))
        return result

    async def run_once(self, now: Optional[datetime] = None, wait: bool = True) -> BatchResult:
        """
        Run one SLA pass.

        With ``wait`` the call queues behind a pass already in flight (manual
        trigger); without it the call is skipped (timer tick).
        """
        if not wait and self._lock.locked():
            logger.info("SLA processing already in progress; skipping this tick")
            return BatchResult(skipped=True)

        async with self._lock:
            now = as_utc(now) or utcnow()
            logger.info("Starting SLA batch processing...")
            result = await self._evaluate_all(now)
            self.last_run_at = now
            self.last_result = result
            logger.info(
                f"SLA processing complete: {result.updated_count} updated, "
                f"{result.escalated_count} escalated, {result.failed_count} failed"
            )
            return result

    async def _loop(self):
        while True:
            try:
                await self.run_once(wait=False)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("SLA processing job failed")
            await asyncio.sleep(max(1, self.interval_minutes) * 60)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> bool:
        if self.running:
            return False
        self._task = asyncio.create_task(self._loop())
        logger.info(f"SLA processing job scheduled (every {self.interval_minutes} minutes)")
        return True

    async def stop(self) -> bool:
        if not self.running:
            return False
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("SLA processing job stopped")
        return True

    def status(self) -> dict:
        return {
            "name": JOB_NAME,
            "running": self.running,
            "in_progress": self._lock.locked(),
            "interval_minutes": self.interval_minutes,
            "max_workers": self.max_workers,
            "last_run_at": self.last_run_at.isoformat() if self.last_run_at else None,
            "last_result": self.last_result.as_dict() if self.last_result else None,
        }


sla_scheduler = SLABatchScheduler()


def get_sla_scheduler() -> SLABatchScheduler:
    return sla_scheduler
