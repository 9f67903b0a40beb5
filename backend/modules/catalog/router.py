"""FastAPI router for catalog operations."""

import math
from typing import Any, Iterator, List, Optional
from urllib.parse import quote

from fastapi import APIRouter, Body, Depends, File, Form, Query, UploadFile
from fastapi.responses import Response, StreamingResponse
from loguru import logger

from .catalog_manager import CatalogManager
from .models import CatalogFilter, GameRecord, ImportResult, OperationResult

router = APIRouter(tags=["catalog"])

# Dependency to get catalog manager
_catalog_manager = None


def get_catalog_manager() -> CatalogManager:
    """Get catalog manager instance."""
    global _catalog_manager
    if _catalog_manager is None:
        _catalog_manager = CatalogManager()
    return _catalog_manager


def _year_bound(value: Optional[str]) -> Optional[float]:
    """Parse a year query bound; blank means no bound."""
    if value is None or not value.strip():
        return None
    bound = float(value)
    if math.isnan(bound):
        raise ValueError(f"not a number: {value!r}")
    return bound


def _iter_stream(stream, chunk_size: int = 64 * 1024) -> Iterator[bytes]:
    try:
        while True:
            chunk = stream.read(chunk_size)
            if not chunk:
                break
            yield chunk
    finally:
        stream.close()


@router.get("/games", response_model=List[GameRecord])
def list_games(
    q: Optional[str] = Query(None, description="Free text over title, developer and description"),
    console: Optional[str] = Query(None),
    min_year: Optional[str] = Query(None, alias="minYear"),
    max_year: Optional[str] = Query(None, alias="maxYear"),
    catalog: CatalogManager = Depends(get_catalog_manager),
):
    """List games with optional filters.

    A year bound that is not a number matches nothing.
    """
    try:
        min_year, max_year = _year_bound(min_year), _year_bound(max_year)
    except ValueError:
        logger.debug(f"Unparsable year bound (minYear={min_year!r}, maxYear={max_year!r})")
        return []
    criteria = CatalogFilter(query=q, console=console or None, min_year=min_year, max_year=max_year)
    return list(catalog.list(criteria))


@router.post("/games", response_model=GameRecord, status_code=201)
def create_game(
    title: Optional[str] = Form(None),
    console: Optional[str] = Form(None),
    year: Optional[str] = Form(None),
    developer: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    download_url: Optional[str] = Form(None, alias="downloadUrl"),
    rom: Optional[UploadFile] = File(None),
    catalog: CatalogManager = Depends(get_catalog_manager),
):
    """Create a game entry with its ROM file."""
    staged = None
    if rom is not None and rom.filename:
        staged = catalog.stage_attachment(rom.filename, rom.file)

    fields = {
        "title": title,
        "console": console,
        "year": year,
        "developer": developer,
        "description": description,
        "download_url": download_url,
    }
    return catalog.create(fields, staged)


@router.get("/games/export")
def export_games(catalog: CatalogManager = Depends(get_catalog_manager)):
    """Export the full catalog as JSON."""
    return Response(content=catalog.export_json(), media_type="application/json")


@router.post("/games/import", response_model=ImportResult)
def import_games(
    payload: Any = Body(...),
    catalog: CatalogManager = Depends(get_catalog_manager),
):
    """Replace the catalog with the posted records (files are not imported)."""
    count = catalog.import_records(payload)
    return ImportResult(count=count)


@router.post("/games/reset", response_model=OperationResult)
def reset_games(catalog: CatalogManager = Depends(get_catalog_manager)):
    """Restore the sample dataset and delete all uploaded files."""
    catalog.reset()
    return OperationResult()


@router.delete("/games/{game_id}", response_model=OperationResult)
def delete_game(
    game_id: int,
    catalog: CatalogManager = Depends(get_catalog_manager),
):
    """Delete a game entry and its ROM file."""
    catalog.delete(game_id)
    return OperationResult()


@router.get("/games/{game_id}/file")
def download_game_file(
    game_id: int,
    catalog: CatalogManager = Depends(get_catalog_manager),
):
    """Download the ROM file under its original name."""
    stream, download_name = catalog.get_attachment(game_id)
    logger.debug(f"Serving ROM for game {game_id} as {download_name}")
    return StreamingResponse(
        _iter_stream(stream),
        media_type="application/octet-stream",
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote(download_name)}"},
    )
