"""Celery background workers.

Tasks:
- extraction.process_job: run one extraction job
- qa.generate_for_blob: generate Q&A pairs for an extracted blob
- agents.run_loop: drive an autonomous agent session
"""
