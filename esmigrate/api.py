"""FastAPI service migrating an uploaded source archive or inline units."""

from __future__ import annotations

import argparse
import zipfile
from pathlib import Path
from tempfile import TemporaryDirectory

from fastapi import FastAPI, File, HTTPException, Query, UploadFile
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .config import resolve_config
from .errors import MigrationError
from .file_walker import iter_source_files, read_units
from .models import SourceUnit
from .pipeline import migrate_units


app = FastAPI(title="esmigrate API")


class UnitPayload(BaseModel):
    path: str
    text: str


class MigrateUnitsRequest(BaseModel):
    units: list[UnitPayload]
    namespace: str | None = None
    root_unit: str | None = None
    two_phase: bool | None = None


def _extract_zip_bytes(zip_bytes: bytes, target_dir: Path) -> Path:
    if not zip_bytes:
        raise HTTPException(status_code=400, detail="Empty archive.")

    archive_path = target_dir / "sources.zip"
    archive_path.write_bytes(zip_bytes)

    try:
        with zipfile.ZipFile(archive_path) as archive:
            archive.extractall(target_dir / "sources")
    except zipfile.BadZipFile as exc:
        raise HTTPException(status_code=400, detail="Invalid zip archive.") from exc

    extracted_root = target_dir / "sources"
    entries = [entry for entry in extracted_root.iterdir() if entry.name not in {".", ".."}]
    if len(entries) == 1 and entries[0].is_dir():
        return entries[0]
    return extracted_root


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/migrate")
def migrate_archive(
    file: UploadFile | None = File(default=None),
    namespace: str | None = Query(default=None),
    root_unit: str | None = Query(default=None),
    sequential: bool = False,
) -> JSONResponse:
    if file is None or not file.filename or not file.filename.lower().endswith(".zip"):
        raise HTTPException(status_code=400, detail="Upload a .zip archive.")

    config = resolve_config(
        namespace=namespace,
        root_unit=root_unit,
        two_phase=False if sequential else None,
    )
    with TemporaryDirectory() as temp_dir:
        zip_bytes = file.file.read()
        root = _extract_zip_bytes(zip_bytes, Path(temp_dir))
        try:
            units = read_units(root, iter_source_files(root, include=config.include))
        except MigrationError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

    result = migrate_units(units, config)
    return JSONResponse(content=result.to_dict(include_text=True))


@app.post("/migrate/units")
def migrate_inline(request: MigrateUnitsRequest) -> JSONResponse:
    if not request.units:
        raise HTTPException(status_code=400, detail="Provide at least one unit.")

    config = resolve_config(
        namespace=request.namespace,
        root_unit=request.root_unit,
        two_phase=request.two_phase,
    )
    units = [SourceUnit(path=unit.path, text=unit.text) for unit in request.units]
    result = migrate_units(units, config)
    return JSONResponse(content=result.to_dict(include_text=True))


def main() -> int:
    parser = argparse.ArgumentParser(description="Run the esmigrate API server")
    parser.add_argument("--host", default="127.0.0.1", help="Bind host")
    parser.add_argument("--port", type=int, default=9000, help="Bind port")
    args = parser.parse_args()

    import uvicorn

    uvicorn.run("esmigrate.api:app", host=args.host, port=args.port, reload=False)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
