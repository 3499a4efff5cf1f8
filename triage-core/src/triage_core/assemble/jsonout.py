"""
JSON output assembler for digest payloads.
"""
import json
from pathlib import Path
from typing import Any, Dict

import structlog
from pydantic import ValidationError

from triage_core.digest.models import DigestPayload

logger = structlog.get_logger()


class JSONAssembler:
    """Write and read digest payloads as JSON."""

    def __init__(self):
        self.indent = 2
        self.ensure_ascii = False

    def write_digest(self, payload: DigestPayload, output_path: Path) -> None:
        """Write the payload to ``output_path``."""
        logger.info("Writing JSON digest", output_path=str(output_path))

        try:
            with open(output_path, 'w', encoding='utf-8') as f:
                json.dump(self.to_dict(payload), f, indent=self.indent, ensure_ascii=self.ensure_ascii)
        except OSError as e:
            logger.error("Failed to write JSON digest", output_path=str(output_path), error=str(e))
            raise

        logger.info("JSON digest written successfully",
                    output_path=str(output_path),
                    projects=len(payload.projects),
                    top_actions=len(payload.top_actions))

    def to_dict(self, payload: DigestPayload) -> Dict[str, Any]:
        return payload.to_dict()

    def read_digest(self, input_path: Path) -> DigestPayload:
        """
        Read a payload written by ``write_digest``.

        Raises:
            ValueError: If the file does not hold a valid digest payload
        """
        logger.info("Reading JSON digest", input_path=str(input_path))

        with open(input_path, 'r', encoding='utf-8') as f:
            data = json.load(f)

        try:
            payload = DigestPayload.model_validate(data)
        except ValidationError as e:
            logger.error("Digest payload does not match schema", input_path=str(input_path), error=str(e))
            raise ValueError(f"Invalid digest payload in {input_path}") from e

        logger.info("JSON digest read successfully", input_path=str(input_path), projects=len(payload.projects))
        return payload
