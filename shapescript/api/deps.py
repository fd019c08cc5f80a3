from typing import Annotated

from fastapi import Depends

from shapescript.core.jobs import JobRegistry, get_job_registry

RegistryDep = Annotated[JobRegistry, Depends(get_job_registry)]
