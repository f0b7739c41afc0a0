"""CLI commands for payment provider webhooks."""

from __future__ import annotations

from pathlib import Path

import click

from marketcore.application.payment_events import INVALID_SIGNATURE_HTTP_STATUS
from marketcore.domain.exceptions import DomainException, InvalidSignatureError
from marketcore.infrastructure.bootstrap import payment_event_processor
from marketcore.infrastructure.config import Settings


@click.command("replay")
@click.option(
    "--payload",
    "payloads",
    required=True,
    multiple=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Raw webhook body (repeatable).",
)
@click.option("--signature", required=True, help="Signature header sent with the bodies.")
@click.pass_obj
def webhook_replay(settings: Settings, payloads: tuple[Path, ...], signature: str) -> None:
    """Deliver saved webhook bodies to the payment event processor.

    Each payload is processed on its own; one failure does not stop the
    rest.
    """
    processor = payment_event_processor(settings)
    failed = 0

    for path in payloads:
        try:
            ack = processor.handle(path.read_bytes(), signature)
        except InvalidSignatureError as exc:
            failed += 1
            click.echo(f"{path.name}: rejected (HTTP {INVALID_SIGNATURE_HTTP_STATUS}): {exc}")
            continue
        except DomainException as exc:
            failed += 1
            click.echo(f"{path.name}: failed: {exc}")
            continue

        click.echo(f"{path.name}: {ack.status} (HTTP {ack.http_status}) event={ack.event_id}")

    if failed:
        raise click.ClickException(f"{failed} of {len(payloads)} payloads failed")
