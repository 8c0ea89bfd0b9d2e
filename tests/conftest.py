from pathlib import Path

import pytest

from step_builders import AP242_SCHEMA, step_text


@pytest.fixture
def write_step(tmp_path: Path):
    def _write(file_name: str, data: str, *, schema: str = AP242_SCHEMA) -> Path:
        path = tmp_path / file_name
        path.write_text(step_text(data, name=file_name, schema=schema), encoding="utf-8")
        return path

    return _write
