from __future__ import annotations

from celery.schedules import crontab


def configure_payments_reliability_schedule(celery_app) -> None:
    celery_app.conf.beat_schedule = celery_app.conf.beat_schedule or {}
    celery_app.conf.beat_schedule.update(
        {
            "recover-stale-pending-payments-every-5-minutes": {
                "task": "app.workers.tasks.payments_reliability.recover_stale_pending_payments",
                "schedule": 300.0,
                "options": {"queue": "q_high"},
            },
            "wallet-reconciliation-every-15-minutes": {
                "task": "app.workers.tasks.payments_reliability.run_wallet_reconciliation",
                "schedule": 900.0,
                "options": {"queue": "q_normal"},
            },
            "wallet-reconciliation-daily-0330-utc": {
                "task": "app.workers.tasks.payments_reliability.run_wallet_reconciliation",
                "schedule": crontab(hour=3, minute=30),
                "options": {"queue": "q_normal"},
            },
        }
    )
