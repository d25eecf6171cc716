"""Shared test helpers: fixed timestamps and a deterministic scheduler."""

import inspect
from datetime import datetime, timezone

from apscheduler.jobstores.base import ConflictingIdError, JobLookupError
from apscheduler.triggers.date import DateTrigger

UTC = timezone.utc


def at(*args) -> int:
    """Epoch ms for a UTC wall-clock time."""
    return int(datetime(*args, tzinfo=UTC).timestamp() * 1000)


T0 = at(2026, 2, 11, 12, 0)


def drive(result):
    """Run a job's result to completion without an event loop.

    Engine jobs never suspend when backed by in-memory collaborators, so a
    single send() finishes them.
    """
    if not inspect.iscoroutine(result):
        return result
    try:
        result.send(None)
    except StopIteration as stop:
        return stop.value
    result.close()
    raise RuntimeError("job suspended; FakeScheduler only runs non-suspending coroutines")


class FakeJob:
    def __init__(self, job_id, func, trigger, args):
        self.id = job_id
        self.func = func
        self.trigger = trigger
        self.args = args


class FakeScheduler:
    """Mirrors the AsyncIOScheduler job API.

    Jobs without a trigger run immediately (the "run now" jobs used for
    remote writes). Triggered jobs are stored until ``fire`` is called.
    """

    running = False

    def __init__(self):
        self.jobs: dict[str, FakeJob] = {}
        self.ran: list[str] = []
        self.hold_run_now = False
        self.held: list[FakeJob] = []

    def add_job(self, func, trigger=None, args=None, id=None, replace_existing=False, **kwargs):
        args = list(args or [])
        if trigger is None:
            if self.hold_run_now:
                self.held.append(FakeJob(id, func, None, args))
                return None
            self.ran.append(id)
            drive(func(*args))
            return None
        if id in self.jobs and not replace_existing:
            raise ConflictingIdError(id)
        job = FakeJob(id, func, trigger, args)
        self.jobs[id] = job
        return job

    def remove_job(self, job_id):
        if job_id not in self.jobs:
            raise JobLookupError(job_id)
        del self.jobs[job_id]

    def get_job(self, job_id):
        return self.jobs.get(job_id)

    def run_held(self, newest_first=False):
        """Run the held run-now jobs, in submission order unless reversed."""
        held, self.held = self.held, []
        for job in reversed(held) if newest_first else held:
            self.ran.append(job.id)
            drive(job.func(*job.args))

    def fire(self, job_id):
        job = self.jobs[job_id]
        if isinstance(job.trigger, DateTrigger):
            del self.jobs[job_id]
        return drive(job.func(*job.args))
