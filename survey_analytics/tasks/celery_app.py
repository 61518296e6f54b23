"""
Celery application configuration.
"""

from celery import Celery
from kombu import Queue, Exchange

from survey_analytics.config import settings

# Create Celery instance
app = Celery(
    'survey_analytics',
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
    include=[
        'survey_analytics.tasks.analysis_tasks'
    ]
)

# Configure Celery
app.conf.update(
    # Task settings
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    timezone='UTC',
    enable_utc=True,

    # Define task queues with priorities
    task_queues=(
        Queue('high', Exchange('high'), routing_key='high', queue_arguments={'x-max-priority': 10}),
        Queue('default', Exchange('default'), routing_key='default', queue_arguments={'x-max-priority': 5}),
        Queue('low', Exchange('low'), routing_key='low', queue_arguments={'x-max-priority': 1}),
    ),

    # Default queue and exchange settings
    task_default_queue='default',
    task_default_exchange='default',
    task_default_routing_key='default',

    # Task result settings
    task_ignore_result=False,
    task_track_started=True,
    result_expires=3600 * 24,  # 1 day

    # Prefetch settings for better resource management
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=1000,

    task_acks_late=True,
    task_reject_on_worker_lost=True,
)

app.conf.task_routes = {
    'survey_analytics.tasks.analysis_tasks.run_insight_analysis': {'queue': settings.TASK_QUEUES['insights']},
    'survey_analytics.tasks.analysis_tasks.run_attention_scan': {'queue': settings.TASK_QUEUES['attention']},
}


if __name__ == '__main__':
    app.start()
