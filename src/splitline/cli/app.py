from __future__ import annotations

import json
from datetime import date

import typer
import uvicorn

from splitline.api.app import create_app
from splitline.api.schemas import PlacementResponse
from splitline.config import get_settings
from splitline.core.access import AccessContextResolver
from splitline.core.placements import PlacementService
from splitline.core.sourcers import CandidateSourcerRegistry, CompanySourcerRegistry
from splitline.db.init import init_database
from splitline.db.session import SessionLocal
from splitline.errors import SplitlineError
from splitline.logging_config import configure_logging

app = typer.Typer(help="Splitline placement engine CLI")
placements_app = typer.Typer(help="Placement lifecycle commands")
sourcers_app = typer.Typer(help="Sourcer registry commands")

app.add_typer(placements_app, name="placements")
app.add_typer(sourcers_app, name="sourcers")


def _echo(payload: object) -> None:
    typer.echo(json.dumps(payload, indent=2, default=str))


def _fail(exc: SplitlineError) -> None:
    _echo({"error": {"message": exc.message}})
    raise typer.Exit(code=1)


@app.command("init")
def init_cmd(demo: bool = typer.Option(False, "--demo", help="Seed a demo marketplace")) -> None:
    """Create tables and optionally seed demo data."""
    configure_logging()
    result = init_database(demo=demo)
    _echo({"ok": True, **result})


@app.command("serve")
def serve_cmd(
    host: str | None = typer.Option(None, "--host"),
    port: int | None = typer.Option(None, "--port"),
) -> None:
    configure_logging()
    settings = get_settings()
    uvicorn.run(create_app(), host=host or settings.app_host, port=port or settings.app_port)


@placements_app.command("list")
def placements_list(
    as_user: str = typer.Option(..., "--as", help="Identity user id of the caller"),
    status: str | None = typer.Option(None, "--status"),
    page: int = typer.Option(1, "--page"),
    limit: int = typer.Option(25, "--limit"),
) -> None:
    configure_logging()
    with SessionLocal() as db:
        try:
            caller = AccessContextResolver(db).resolve(as_user)
            items, total = PlacementService(db).list_placements(
                caller, {"status": status}, page=page, limit=limit
            )
        except SplitlineError as exc:
            _fail(exc)
        _echo(
            {
                "total": total,
                "data": [PlacementResponse.model_validate(item).model_dump(mode="json") for item in items],
            }
        )


@placements_app.command("show")
def placements_show(
    placement_id: str = typer.Argument(...),
    as_user: str = typer.Option(..., "--as"),
) -> None:
    configure_logging()
    with SessionLocal() as db:
        try:
            caller = AccessContextResolver(db).resolve(as_user)
            placement = PlacementService(db).get_placement(placement_id, caller)
        except SplitlineError as exc:
            _fail(exc)
        _echo(PlacementResponse.model_validate(placement).model_dump(mode="json"))


@placements_app.command("hire")
def placements_hire(
    application_id: str = typer.Option(..., "--application-id"),
    start_date: str | None = typer.Option(None, "--start-date", help="ISO date, defaults to today"),
) -> None:
    """Create the placement for an application that reached the hired stage."""
    configure_logging()
    start = date.fromisoformat(start_date) if start_date else None
    with SessionLocal() as db:
        try:
            placement = PlacementService(db).create_placement_from_application(application_id, start_date=start)
        except SplitlineError as exc:
            _fail(exc)
        _echo(PlacementResponse.model_validate(placement).model_dump(mode="json"))


@placements_app.command("transition")
def placements_transition(
    placement_id: str = typer.Argument(...),
    status: str = typer.Option(..., "--status"),
    as_user: str = typer.Option(..., "--as"),
) -> None:
    configure_logging()
    with SessionLocal() as db:
        try:
            caller = AccessContextResolver(db).resolve(as_user)
            placement = PlacementService(db).update_placement(caller, placement_id, {"status": status})
        except SplitlineError as exc:
            _fail(exc)
        _echo({"id": placement.id, "status": placement.status})


@sourcers_app.command("check-protection")
def sourcers_check_protection(
    company_id: str | None = typer.Option(None, "--company-id"),
    candidate_id: str | None = typer.Option(None, "--candidate-id"),
) -> None:
    configure_logging()
    if bool(company_id) == bool(candidate_id):
        raise typer.BadParameter("pass exactly one of --company-id or --candidate-id")
    with SessionLocal() as db:
        if company_id:
            status = CompanySourcerRegistry(db).check_protection_status(company_id)
        else:
            status = CandidateSourcerRegistry(db).check_protection_status(candidate_id)
        _echo(status.model_dump(mode="json"))
