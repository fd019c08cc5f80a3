"""
Job evaluation routes: full evaluation, incremental re-evaluation, teardown.

Script faults are not HTTP errors: they come back as 200 with success=false
and a human-readable error, so the editor can show them next to the script.
"""

import logging

from fastapi import APIRouter, HTTPException

from shapescript.api.deps import RegistryDep
from shapescript.core.jobs import JobLimitError
from shapescript.geometry import Bounds
from shapescript.schemas import EvalRequest, EvalResponse, Message

_log = logging.getLogger(__name__)

router = APIRouter(prefix="/jobs", tags=["jobs"])


@router.post("/{job_id}/eval", response_model=EvalResponse)
def eval_script(job_id: str, body: EvalRequest, registry: RegistryDep) -> EvalResponse:
    """
    Run the whole script for this job and call main(args).
    Creates the job on first use.
    """
    bounds = Bounds()
    try:
        with registry.acquire(job_id) as evaluator:
            result = evaluator.eval_script(body.script, bounds, body.params)
    except JobLimitError as e:
        raise HTTPException(status_code=503, detail=str(e)) from e
    return EvalResponse.from_result(result, bounds)


@router.post("/{job_id}/reeval", response_model=EvalResponse)
def reeval_script(job_id: str, body: EvalRequest, registry: RegistryDep) -> EvalResponse:
    """
    Apply changed parameters and run only their onChange handlers.
    Unknown jobs are 404; a known job without a full evaluation fails in the body.
    """
    bounds = Bounds()
    with registry.existing(job_id) as evaluator:
        if evaluator is None:
            raise HTTPException(status_code=404, detail=f"Job not found: {job_id}")
        result = evaluator.reeval_script(body.script, bounds, body.params)
    return EvalResponse.from_result(result, bounds)


@router.delete("/{job_id}", response_model=Message)
def clear_job(job_id: str, registry: RegistryDep) -> Message:
    """Release the job's execution context."""
    if not registry.clear(job_id):
        raise HTTPException(status_code=404, detail=f"Job not found: {job_id}")
    return Message(message="Job cleared")
