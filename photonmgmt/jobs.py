"""Background jobs whose status and result are fetched over the API."""

from __future__ import annotations

import logging
import queue
import re
import threading
from dataclasses import dataclass, field
from typing import Any, Callable

from photonmgmt.web import Reply, Request, Router, json_error, json_response

logger = logging.getLogger("photonmgmt")

_DIGITS = re.compile(r"[0-9]+")

STATUS_PATH = "/api/v1/_jobs/status/"
RESULT_PATH = "/api/v1/_jobs/result/"


@dataclass
class Result:
    output: Any = None
    error: BaseException | None = None


@dataclass
class Job:
    id: int
    results: queue.Queue = field(default_factory=lambda: queue.Queue(maxsize=1), repr=False)


def _parse_id(text: str) -> int | None:
    if not _DIGITS.fullmatch(text) or int(text) >= 1 << 64:
        return None
    return int(text)


class Jobs:
    """Registry of running jobs and of finished results not yet collected."""

    def __init__(self) -> None:
        self._jobs: dict[int, Job] = {}
        self._results: dict[int, Result] = {}
        self._counter = 0
        self._lock = threading.Lock()

    def new_job(self) -> Job:
        with self._lock:
            self._counter += 1
            job = Job(id=self._counter)
            self._jobs[job.id] = job
            return job

    def remove_job(self, job_id: int) -> None:
        with self._lock:
            self._jobs.pop(job_id, None)

    def remove_result(self, job_id: int) -> None:
        with self._lock:
            self._results.pop(job_id, None)

    def create_job(self, acquire: Callable[[], Any]) -> Job:
        """Run acquire in a background thread and return the job tracking it."""
        job = self.new_job()

        def run() -> None:
            try:
                result = Result(output=acquire())
            except Exception as exc:
                result = Result(error=exc)
            job.results.put(result)

        threading.Thread(target=run, daemon=True).start()
        return job

    def status(self, request: Request) -> Reply:
        job_id = _parse_id(request.vars.get("id", ""))
        if job_id is None:
            return json_error("invalid id")
        with self._lock:
            job = self._jobs.get(job_id)
        if job is None:
            return json_error("not found")
        try:
            result = job.results.get_nowait()
        except queue.Empty:
            return json_response({"Status": "inprogress", "Link": ""})
        with self._lock:
            self._results[job_id] = result
        self.remove_job(job_id)
        return json_response({"Status": "complete", "Link": f"{RESULT_PATH}{job_id}"})

    def result(self, request: Request) -> Reply:
        job_id = _parse_id(request.vars.get("id", ""))
        if job_id is None:
            return json_error("invalid id")
        with self._lock:
            result = self._results.get(job_id)
        if result is None:
            return json_error("not found")
        reply = json_error(result.error) if result.error is not None else json_response(result.output)
        self.remove_result(job_id)
        return reply


def accepted_response(job: Job) -> Reply:
    """Answer 202 with the location where the job's status can be polled."""
    return Reply(status=202, headers={"Location": f"{STATUS_PATH}{job.id}"})


def register_router_jobs(router: Router, jobs: Jobs) -> None:
    sub = router.subrouter("/_jobs")
    sub.add_route("/status/{id}", jobs.status, ["GET"])
    sub.add_route("/result/{id}", jobs.result, ["GET"])