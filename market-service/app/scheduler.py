# app/scheduler.py
"""
Auction/Expiry Scheduler.

Uses APScheduler to fire one-shot jobs at market deadlines:
- Concluding auctions at their end_time
- Deactivating listings at their expiration

A periodic poll looks one lookahead window ahead and schedules a DateTrigger
job per deadline. Deadlines already in the past fire immediately. Each id is
tracked while its timer is pending and released after the job runs, so a
failed job is picked up again by the next poll. Jobs APScheduler drops as
missed never run; their ids are released by the missed-job listener, and
poll() also forgets any claim whose job has left the job store without
running.
"""

import logging
import threading
from datetime import timedelta
from typing import Callable, Optional, Set

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_MISSED
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.orm import Session

from app.background_tasks.auction_tasks import expire_listing, resolve_auction
from app.crud import crud_market_listing
from app.services.notifications import OfferNotifier
from app.utils.timeutils import as_utc, utcnow

logger = logging.getLogger(__name__)

POLL_JOB_ID = "poll_market_deadlines"
AUCTION_JOB_PREFIX = "auction:"
LISTING_JOB_PREFIX = "listing:"


def _on_job_error(event):
    """Log scheduler job errors with full context."""
    exc = event.exception
    logger.error(
        "Scheduled job FAILED: job_id=%s error=%s",
        event.job_id, exc,
        exc_info=(type(exc), exc, None) if exc else None,
    )
    if event.traceback:
        logger.error("Traceback for job %s:\n%s", event.job_id, event.traceback)


class MarketScheduler:
    def __init__(
        self,
        session_factory: Callable[[], Session],
        scheduler: Optional[BackgroundScheduler] = None,
        poll_minutes: int = 5,
        lookahead_minutes: int = 60,
        notifier: Optional[OfferNotifier] = None,
    ):
        self.session_factory = session_factory
        self.scheduler = scheduler or BackgroundScheduler(
            timezone="UTC",
            job_defaults={
                "coalesce": True,  # Combine missed executions
                "max_instances": 1,
                "misfire_grace_time": 60,
            },
        )
        self.poll_minutes = poll_minutes
        self.lookahead = timedelta(minutes=lookahead_minutes)
        self.notifier = notifier

        self._guard = threading.Lock()
        self._scheduled_auctions: Set[str] = set()
        self._scheduled_listings: Set[str] = set()
        # Job ids whose function is executing right now
        self._running: Set[str] = set()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        self.scheduler.add_listener(_on_job_error, EVENT_JOB_ERROR)
        self.scheduler.add_listener(self._on_job_missed, EVENT_JOB_MISSED)
        self.scheduler.add_job(
            func=self.poll,
            trigger=IntervalTrigger(minutes=self.poll_minutes),
            id=POLL_JOB_ID,
            name="Poll Market Deadlines",
            replace_existing=True,
        )
        self.scheduler.start()
        logger.info(f"Market scheduler started (poll every {self.poll_minutes} minutes)")
        self.poll()

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=True)
            logger.info("Market scheduler shutdown complete")

    def status(self) -> dict:
        jobs = [
            {
                "id": job.id,
                "name": job.name,
                "next_run_time": job.next_run_time.isoformat() if job.next_run_time else None,
                "trigger": str(job.trigger),
            }
            for job in self.scheduler.get_jobs()
        ]
        return {
            "status": "running" if self.scheduler.running else "stopped",
            "pending_auctions": len(self._scheduled_auctions),
            "pending_listings": len(self._scheduled_listings),
            "jobs": jobs,
        }

    # ------------------------------------------------------------------
    # Polling
    # ------------------------------------------------------------------

    def _claim(self, pending: Set[str], key: str) -> bool:
        with self._guard:
            if key in pending:
                return False
            pending.add(key)
            return True

    def _release(self, pending: Set[str], key: str) -> None:
        with self._guard:
            pending.discard(key)

    def _pending_for(self, job_id: str):
        """Map a deadline job id to its claim set and listing id."""
        if job_id.startswith(AUCTION_JOB_PREFIX):
            return self._scheduled_auctions, job_id[len(AUCTION_JOB_PREFIX):]
        if job_id.startswith(LISTING_JOB_PREFIX):
            return self._scheduled_listings, job_id[len(LISTING_JOB_PREFIX):]
        return None, None

    def _on_job_missed(self, event) -> None:
        logger.warning(
            "Scheduled job MISSED: job_id=%s scheduled_run_time=%s",
            event.job_id,
            event.scheduled_run_time,
        )
        pending, listing_id = self._pending_for(event.job_id)
        if pending is not None:
            self._release(pending, listing_id)

    def _prune_lost_claims(self) -> None:
        """Drop claims whose job is neither in the job store nor executing."""
        for pending, prefix in (
            (self._scheduled_auctions, AUCTION_JOB_PREFIX),
            (self._scheduled_listings, LISTING_JOB_PREFIX),
        ):
            with self._guard:
                claimed = list(pending)
            for listing_id in claimed:
                job_id = f"{prefix}{listing_id}"
                with self._guard:
                    if job_id in self._running:
                        continue
                if self.scheduler.get_job(job_id) is None:
                    logger.warning(f"Job {job_id} vanished without running, releasing claim")
                    self._release(pending, listing_id)

    def poll(self) -> int:
        """Schedule a timer for every deadline inside the lookahead window. Returns how many."""
        now = utcnow()
        horizon = now + self.lookahead
        scheduled = 0
        self._prune_lost_claims()

        db = self.session_factory()
        try:
            auctions = [
                (a.listing_id, as_utc(a.end_time))
                for a in crud_market_listing.get_expiring_auctions(db, before=horizon)
            ]
            listings = [
                (listing.listing_id, as_utc(listing.expiration))
                for listing in crud_market_listing.get_expiring_listings(db, before=horizon)
            ]
        except Exception as e:
            logger.error(f"Error polling market deadlines: {e}", exc_info=True)
            return 0
        finally:
            db.close()

        for listing_id, deadline in auctions:
            if self._claim(self._scheduled_auctions, listing_id):
                self._schedule(f"{AUCTION_JOB_PREFIX}{listing_id}", self.run_auction, listing_id, max(deadline, now))
                scheduled += 1

        for listing_id, deadline in listings:
            if self._claim(self._scheduled_listings, listing_id):
                self._schedule(f"{LISTING_JOB_PREFIX}{listing_id}", self.run_listing_expiry, listing_id, max(deadline, now))
                scheduled += 1

        if scheduled:
            logger.info(f"Scheduled {scheduled} market deadline job(s)")
        return scheduled

    def _schedule(self, job_id: str, func: Callable, listing_id: str, run_date) -> None:
        self.scheduler.add_job(
            func=func,
            trigger=DateTrigger(run_date=run_date),
            args=[listing_id],
            id=job_id,
            name=job_id,
            replace_existing=True,
        )

    # ------------------------------------------------------------------
    # Jobs
    # ------------------------------------------------------------------

    def _mark_running(self, job_id: str, running: bool) -> None:
        with self._guard:
            if running:
                self._running.add(job_id)
            else:
                self._running.discard(job_id)

    def run_auction(self, listing_id: str) -> None:
        job_id = f"{AUCTION_JOB_PREFIX}{listing_id}"
        self._mark_running(job_id, True)
        db = self.session_factory()
        try:
            resolve_auction(db, listing_id, notifier=self.notifier)
        except Exception as e:
            logger.error(f"Error resolving auction {listing_id}: {e}", exc_info=True)
        finally:
            db.close()
            self._release(self._scheduled_auctions, listing_id)
            self._mark_running(job_id, False)

    def run_listing_expiry(self, listing_id: str) -> None:
        job_id = f"{LISTING_JOB_PREFIX}{listing_id}"
        self._mark_running(job_id, True)
        db = self.session_factory()
        try:
            expire_listing(db, listing_id)
        except Exception as e:
            logger.error(f"Error expiring listing {listing_id}: {e}", exc_info=True)
        finally:
            db.close()
            self._release(self._scheduled_listings, listing_id)
            self._mark_running(job_id, False)
