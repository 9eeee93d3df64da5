"""
Effect job message schema.

Body format:
    {"bucket": "...", "input_key": "...", "output_key": "...", "effect_type": "..."}

bucket may be omitted (the worker's default bucket applies) and
effect_type may be omitted (the default preset applies).
"""

import json
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from workers.errors import JobParseError


class EffectJob(BaseModel):
    model_config = ConfigDict(extra='ignore', str_strip_whitespace=True)

    bucket: Optional[str] = Field(default=None, min_length=1)
    input_key: str = Field(min_length=1)
    output_key: str = Field(min_length=1)
    effect_type: Optional[str] = Field(default=None, min_length=1)

    @property
    def source(self) -> str:
        return f"s3://{self.bucket}/{self.input_key}"


def parse_job(body: str, default_bucket: Optional[str] = None) -> EffectJob:
    """
    Parse a queue message body into an EffectJob.

    Raises:
        JobParseError: body is not JSON, not an object, or fails validation
    """
    try:
        data = json.loads(body)
    except (TypeError, ValueError) as e:
        raise JobParseError(f"Message body is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise JobParseError(f"Message body must be a JSON object, got {type(data).__name__}")

    try:
        job = EffectJob.model_validate(data)
    except ValidationError as e:
        fields = ', '.join('.'.join(str(p) for p in err['loc']) or '<body>' for err in e.errors())
        raise JobParseError(f"Invalid job message ({fields}): {e.error_count()} error(s)") from e

    if job.bucket is None:
        if not default_bucket:
            raise JobParseError("Job has no bucket and no default bucket is configured")
        job = job.model_copy(update={'bucket': default_bucket})

    if job.input_key == job.output_key:
        raise JobParseError(f"input_key and output_key are the same ('{job.input_key}')")

    return job
