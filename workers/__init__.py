"""
Workers module for the video effects pipeline.
Stateless worker that processes effect jobs from an SQS queue.

Imports are lazy so the job schema and errors can be used without
pulling in boto3 clients.
"""

__all__ = [
    'run_effect_worker',
]


def run_effect_worker(argv=None):
    from .effect_worker import run_effect_worker as _run
    return _run(argv)
