"""
Celery tasks for automatic client labels
"""

from celery_worker import celery
from app import create_app
from logging_config import get_logger
from utils.datetime_utils import utc_now

logger = get_logger(__name__)


@celery.task(bind=True, max_retries=3, default_retry_delay=60)
def update_account_client_labels(self, account_id: int):
    """
    Re-evaluate the auto labels of every active client of one account.

    Args:
        account_id: Account whose clients are refreshed
    """
    app = create_app()

    with app.app_context():
        auto_label_service = app.services.get('auto_label')
        result = auto_label_service.update_all_clients_labels(account_id)

        if result.is_failure:
            logger.error("Auto label refresh failed", account_id=account_id,
                         error=result.error, error_code=result.error_code)
            raise self.retry(exc=RuntimeError(result.error))

        data = result.data
        logger.info("Auto label refresh finished", account_id=account_id,
                    updated=data['updated'], failed=len(data['failed']))
        return {
            'success': True,
            'account_id': account_id,
            'updated': data['updated'],
            'failed': data['failed'],
            'timestamp': utc_now().isoformat()
        }


@celery.task
def refresh_all_account_labels():
    """Queue a label refresh for every active account"""
    app = create_app()

    with app.app_context():
        user_repository = app.services.get('user_repository')
        account_ids = user_repository.find_active_ids()

    for account_id in account_ids:
        update_account_client_labels.delay(account_id)

    logger.info("Queued auto label refresh", accounts=len(account_ids))
    return {'queued': len(account_ids), 'timestamp': utc_now().isoformat()}
