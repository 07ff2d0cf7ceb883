#!/usr/bin/env python3
"""
Diamond DAO CLI

Command-line interface for a diamond cut governance gate. The DAO state is
kept in a JSON state file between invocations.

Usage:
    diamond-dao init [--force]
    diamond-dao propose --as SIGNER --cut FACET:ACTION:SEL[,SEL...] [--cut ...]
    diamond-dao vote --as SIGNER PROPOSAL_ID
    diamond-dao relinquish --as SIGNER
    diamond-dao show PROPOSAL_ID
    diamond-dao list [--status STATUS]
    diamond-dao status
    diamond-dao events
"""

import json
from datetime import datetime, timezone
from typing import List, Optional, Tuple

import click

from .. import __version__
from ..config import load_config
from ..crypto.address import short_address
from ..exceptions import DiamondDAOException
from ..governance import (
    ChangeSet,
    DiamondDAO,
    FacetCut,
    FacetCutAction,
    GovernanceError,
    ProposalStatus,
)
from ..logger import configure_logging
from ..storage import StateFile


STATUS_COLORS = {
    ProposalStatus.PENDING: "yellow",
    ProposalStatus.EXECUTED: "green",
    ProposalStatus.FAILED: "red",
}


def format_timestamp(ts: Optional[float]) -> str:
    if ts is None:
        return "-"
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


def parse_cut(spec: str) -> FacetCut:
    """Parse ``FACET:ACTION:SEL[,SEL...]`` into a FacetCut."""
    parts = spec.split(":")
    if len(parts) != 3:
        raise click.BadParameter(
            f"expected FACET:ACTION:SEL[,SEL...], got {spec!r}", param_hint="--cut"
        )
    facet, action_name, selectors = parts
    try:
        action = FacetCutAction[action_name.strip().upper()]
    except KeyError:
        choices = ", ".join(a.name.lower() for a in FacetCutAction)
        raise click.BadParameter(
            f"unknown action {action_name!r} (choose from {choices})", param_hint="--cut"
        ) from None

    selector_list = [s.strip() for s in selectors.split(",") if s.strip()]
    try:
        return FacetCut(facet.strip(), action, tuple(selector_list))
    except GovernanceError as e:
        raise click.BadParameter(str(e), param_hint="--cut") from None


# ── State helpers ─────────────────────────────────────────────────────

def _state_file(ctx: click.Context) -> StateFile:
    return StateFile(ctx.obj["state_path"])


def _load_dao(ctx: click.Context) -> Tuple[StateFile, DiamondDAO]:
    state = _state_file(ctx)
    try:
        return state, state.load()
    except DiamondDAOException as e:
        raise click.ClickException(str(e))


def _save_dao(state: StateFile, dao: DiamondDAO) -> None:
    try:
        state.save(dao)
    except DiamondDAOException as e:
        raise click.ClickException(str(e))


def _print_proposal(dao: DiamondDAO, proposal) -> None:
    effective = dao.effective_status(proposal.id)
    status = click.style(effective.name, fg=STATUS_COLORS[effective], bold=True)
    if effective != proposal.status:
        status += click.style(" (not yet recorded)", fg="bright_black")

    click.echo(click.style("═══════════════════════════════════════", fg="cyan"))
    click.echo(click.style(f"           Cut Proposal #{proposal.id}", fg="cyan", bold=True))
    click.echo(click.style("═══════════════════════════════════════", fg="cyan"))
    click.echo(f"Status:     {status}")
    click.echo(f"Proposer:   {proposal.proposer}")
    click.echo(f"Votes:      {proposal.vote_count}/{dao.vote_threshold()}")
    click.echo(f"Created:    {format_timestamp(proposal.created_at)}")
    click.echo(f"Expires:    {format_timestamp(proposal.expires_at)}")
    if proposal.resolved_at is not None:
        click.echo(f"Resolved:   {format_timestamp(proposal.resolved_at)}")
    if proposal.failure_reason:
        click.echo(f"Reason:     {proposal.failure_reason}")
    click.echo(f"Digest:     {proposal.change_set.digest}")

    click.echo()
    click.echo(click.style("Cuts:", fg="green"))
    for cut in proposal.change_set.cuts:
        click.echo(f"  {cut.action.name:<8} {cut.facet_address}")
        for selector in cut.function_selectors:
            click.echo(f"           {selector}")
    if proposal.change_set.init is not None:
        click.echo(click.style("Init:", fg="green"))
        click.echo(f"  {proposal.change_set.init.target}")

    click.echo()
    click.echo(click.style("Voters:", fg="green"))
    for voter in sorted(proposal.voters):
        click.echo(f"  {voter}")


# ══════════════════════════════════════════════════════════════════════
#  COMMANDS
# ══════════════════════════════════════════════════════════════════════

@click.group()
@click.version_option(version=__version__, prog_name="diamond-dao")
@click.option(
    "--state", "-s",
    "state_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="DAO state file (default: [storage] state_file from config)"
)
@click.option(
    "--config", "-c",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="TOML config file (default: $DIAMOND_DAO_CONFIG or ./diamond_dao.toml)"
)
@click.pass_context
def cli(ctx: click.Context, state_path: Optional[str], config_path: Optional[str]):
    """Diamond DAO Command Line Interface

    Multi-signer governance over diamond cuts.
    """
    try:
        config = load_config(config_path)
    except DiamondDAOException as e:
        raise click.ClickException(str(e))

    configure_logging(config.logging.level, file_output=config.logging.file_output)
    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    ctx.obj["state_path"] = state_path or config.storage.state_file


@cli.command("init")
@click.option("--force", is_flag=True, help="Overwrite an existing state file")
@click.pass_context
def init_cmd(ctx: click.Context, force: bool):
    """Deploy a new DAO from the [dao] config section.

    Examples:

        DIAMOND_DAO_SIGNERS=0xA..,0xB..,0xC.. DIAMOND_DAO_VOTE_THRESHOLD=2 diamond-dao init
    """
    state = _state_file(ctx)
    if state.exists() and not force:
        raise click.ClickException(
            f"State file {state.path} already exists (use --force to overwrite)"
        )

    try:
        dao = ctx.obj["config"].create_dao()
    except DiamondDAOException as e:
        raise click.ClickException(f"Failed to deploy DAO: {e}")

    _save_dao(state, dao)

    click.echo(click.style("✓ DAO deployed!", fg="green", bold=True))
    click.echo(f"  Signers:    {len(dao.signers)}")
    click.echo(f"  Threshold:  {dao.vote_threshold()}")
    click.echo(f"  Expiration: {dao.proposal_expiration():g}s")
    click.echo(f"  State:      {state.path}")


@cli.command("propose")
@click.option("--as", "signer", required=True, help="Proposing signer address")
@click.option(
    "--cut",
    "cuts",
    multiple=True,
    required=True,
    help="FACET:ACTION:SEL[,SEL...] with ACTION one of add, replace, remove (repeatable)"
)
@click.pass_context
def propose_cmd(ctx: click.Context, signer: str, cuts: Tuple[str, ...]):
    """Propose a diamond cut. The proposer's vote is counted immediately.

    Examples:

        diamond-dao propose --as 0xA.. --cut 0xF..:add:0x12345678,0x9abcdef0
    """
    change_set = ChangeSet(cuts=tuple(parse_cut(c) for c in cuts))

    state, dao = _load_dao(ctx)
    try:
        proposal_id = dao.propose_cut(signer, change_set)
    except GovernanceError as e:
        raise click.ClickException(str(e))
    _save_dao(state, dao)

    proposal = dao.get_proposal(proposal_id)
    click.echo(click.style(f"✓ Proposal #{proposal_id} created", fg="green", bold=True))
    click.echo(f"  Digest:  {change_set.digest}")
    click.echo(f"  Votes:   {proposal.vote_count}/{dao.vote_threshold()}")
    click.echo(f"  Expires: {format_timestamp(proposal.expires_at)}")
    if proposal.status == ProposalStatus.EXECUTED:
        click.echo(click.style("✓ Threshold reached, cut executed", fg="green"))


@cli.command("vote")
@click.argument("proposal_id", type=int)
@click.option("--as", "signer", required=True, help="Voting signer address")
@click.pass_context
def vote_cmd(ctx: click.Context, proposal_id: int, signer: str):
    """Vote for a pending cut proposal."""
    state, dao = _load_dao(ctx)
    try:
        status = dao.vote_on_cut(signer, proposal_id)
    except GovernanceError as e:
        # Expired and orphaned proposals are marked FAILED before the error
        _save_dao(state, dao)
        raise click.ClickException(str(e))
    _save_dao(state, dao)

    proposal = dao.get_proposal(proposal_id)
    click.echo(click.style(f"✓ Vote registered on proposal #{proposal_id}", fg="green"))
    click.echo(f"  Votes:  {proposal.vote_count}/{dao.vote_threshold()}")
    click.echo("  Status: " + click.style(status.name, fg=STATUS_COLORS[status], bold=True))


@cli.command("relinquish")
@click.option("--as", "signer", required=True, help="Voting signer address")
@click.pass_context
def relinquish_cmd(ctx: click.Context, signer: str):
    """Vote to permanently relinquish cut control."""
    state, dao = _load_dao(ctx)
    try:
        relinquished = dao.vote_to_relinquish_cut_control(signer)
    except GovernanceError as e:
        raise click.ClickException(str(e))
    _save_dao(state, dao)

    click.echo(click.style("✓ Relinquish vote registered", fg="green"))
    click.echo(f"  Votes: {dao.relinquish_vote_count}/{dao.vote_threshold()}")
    if relinquished:
        click.echo(click.style("Cut control relinquished. No further cuts can be executed.",
                               fg="yellow", bold=True))


@cli.command("show")
@click.argument("proposal_id", type=int)
@click.pass_context
def show_cmd(ctx: click.Context, proposal_id: int):
    """Show one cut proposal."""
    _, dao = _load_dao(ctx)
    try:
        proposal = dao.get_proposal(proposal_id)
    except GovernanceError as e:
        raise click.ClickException(str(e))
    _print_proposal(dao, proposal)


@cli.command("list")
@click.option(
    "--status",
    "status_name",
    type=click.Choice([s.name.lower() for s in ProposalStatus], case_sensitive=False),
    default=None,
    help="Only list proposals with this recorded status"
)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def list_cmd(ctx: click.Context, status_name: Optional[str], as_json: bool):
    """List cut proposals."""
    _, dao = _load_dao(ctx)
    status = ProposalStatus[status_name.upper()] if status_name else None
    proposals = dao.proposals(status)

    if as_json:
        click.echo(json.dumps([p.to_dict() for p in proposals], indent=2))
        return

    if not proposals:
        click.echo("No proposals.")
        return

    for proposal in proposals:
        effective = dao.effective_status(proposal.id)
        click.echo(
            f"#{proposal.id:<4} "
            + click.style(f"{effective.name:<9}", fg=STATUS_COLORS[effective])
            + f" votes {proposal.vote_count}/{dao.vote_threshold()}"
            + f"  by {short_address(proposal.proposer)}"
            + f"  {proposal.change_set.digest[:18]}"
        )


@cli.command("status")
@click.pass_context
def status_cmd(ctx: click.Context):
    """Show DAO configuration and facet table."""
    _, dao = _load_dao(ctx)

    click.echo(click.style("═══════════════════════════════════════", fg="cyan"))
    click.echo(click.style("           Diamond DAO Status          ", fg="cyan", bold=True))
    click.echo(click.style("═══════════════════════════════════════", fg="cyan"))
    click.echo(f"Admin:        {dao.admin}")
    click.echo(f"Threshold:    {dao.vote_threshold()} of {len(dao.signers)}")
    click.echo(f"Expiration:   {dao.proposal_expiration():g}s")
    click.echo(f"Proposals:    {len(dao.proposals())} "
               f"({len(dao.proposals(ProposalStatus.PENDING))} pending)")
    if dao.relinquished:
        click.echo("Cut control:  " + click.style("RELINQUISHED", fg="red", bold=True))
    else:
        click.echo(f"Cut control:  active "
                   f"(relinquish votes {dao.relinquish_vote_count}/{dao.vote_threshold()})")

    click.echo()
    click.echo(click.style("Signers:", fg="green"))
    for signer in dao.signers:
        marker = " (relinquish vote)" if dao.get_relinquish_vote_status(signer) else ""
        click.echo(f"  {signer}{marker}")

    registry = dao.facet_registry
    if registry is not None:
        click.echo()
        click.echo(click.style(f"Facets ({registry.cut_count} cuts applied):", fg="green"))
        facets = registry.facets()
        if not facets:
            click.echo("  (none)")
        for facet in facets:
            click.echo(f"  {facet['facetAddress']}")
            for selector in facet["functionSelectors"]:
                click.echo(f"    {selector}")


@cli.command("events")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def events_cmd(ctx: click.Context, as_json: bool):
    """Show the governance event history."""
    _, dao = _load_dao(ctx)
    events: List[dict] = [e.to_dict() for e in dao.events]

    if as_json:
        click.echo(json.dumps(events, indent=2))
        return

    if not events:
        click.echo("No events.")
        return

    for event in events:
        args = {k: v for k, v in event.items() if k not in ("event", "timestamp")}
        rendered = ", ".join(f"{k}={v}" for k, v in args.items() if k != "summary")
        click.echo(
            f"{format_timestamp(event['timestamp'])}  "
            + click.style(f"{event['event']:<24}", fg="cyan")
            + f" {rendered}"
        )


if __name__ == "__main__":
    cli()
