import logging
from datetime import date
from app import db
from subscriptions import default_horizon, expire_ended_subscriptions, generate_rides_for_all_active

# Set up logging
logger = logging.getLogger(__name__)

def generate_scheduled_rides(app, today=None):
    """Background job: generate rides for every active subscription, then expire ended ones"""
    with app.app_context():
        try:
            today = today or date.today()
            horizon = default_horizon(today)
            logger.info(f"===== RIDE GENERATION SWEEP {today} (horizon {horizon}) =====")

            # Generate first so a subscription that ended since the last sweep gets its final days
            summary = generate_rides_for_all_active(horizon)

            expired = expire_ended_subscriptions(today)
            if expired:
                logger.info(f"Expired {expired} subscriptions past their end date")

            logger.info(f"===== SWEEP COMPLETED: {summary} =====")
            return summary
        except Exception as e:
            logger.exception(f"Error in ride generation sweep: {str(e)}")
            db.session.rollback()
            return None
        finally:
            db.session.close()
