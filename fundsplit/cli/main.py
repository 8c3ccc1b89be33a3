"""
FundSplit CLI - Command Line Interface

Main entry point for all CLI commands.
"""

import json
from pathlib import Path

import click
from pydantic import ValidationError

from fundsplit.utils.logger import setup_logging


def _load_json_model(model, path: Path):
    try:
        return model.model_validate_json(Path(path).read_text())
    except ValidationError as e:
        raise click.ClickException(f"{path}: {e}")


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--log-file", is_flag=True, help="Also write logs to <log_dir>/fundsplit.log")
@click.option("--data-dir", default=None, help="Data directory (default: FUNDSPLIT_DATA_DIR or ./data)")
@click.option("--env-file", default=None, help="dotenv file with FUNDSPLIT_* settings")
@click.version_option(version="0.1.0")
@click.pass_context
def cli(ctx, debug, log_file, data_dir, env_file):
    """FundSplit - Merkle-committed distribution of auction proceeds"""
    import logging
    from fundsplit.core.config import load_config

    config = load_config(env_file)
    level = logging.DEBUG if debug else logging.INFO
    setup_logging(level=level, log_dir=str(config.log_dir), log_to_file=log_file)

    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    ctx.obj["data_dir"] = Path(data_dir).expanduser() if data_dir else config.data_dir


# =============================================================================
# Commitment Commands
# =============================================================================


@cli.command("build")
@click.argument("allocations", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path), default=None,
              help="Write the commitment JSON here instead of stdout")
@click.pass_context
def build(ctx, allocations, output):
    """Build a commitment (root + proofs) from an allocation file"""
    from fundsplit.core.distribution import AllocationFile, allocations_from_file, build_distribution
    from fundsplit.core.distribution.shares import scaled_to_percent

    scale = ctx.obj["config"].percent_scale
    data = _load_json_model(AllocationFile, allocations)
    try:
        commitment = build_distribution(allocations_from_file(data, scale), scale)
    except ValueError as e:
        raise click.ClickException(str(e))

    text = json.dumps(commitment.model_dump(), indent=2)
    if output:
        output.write_text(text)
        click.echo(f"✓ Commitment written to {output}")
    else:
        click.echo(text)

    click.echo(f"  Root: {commitment.merkle_root}", err=True)
    click.echo(f"  Beneficiaries: {len(commitment.claims)}", err=True)
    click.echo(f"  Total: {scaled_to_percent(commitment.total_share_percent, scale)}%", err=True)
    if commitment.total_share_percent != 100 * scale:
        click.echo("  ⚠️  Shares do not sum to 100%", err=True)


@cli.command("verify")
@click.argument("commitment", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--address", required=True, help="Beneficiary address (0x...)")
def verify_cmd(commitment, address):
    """Check a beneficiary's proof against the commitment root"""
    from fundsplit.core.distribution import CommitmentFile, verify
    from fundsplit.crypto import hex_to_bytes, is_valid_address

    if not is_valid_address(address):
        raise click.ClickException(f"Invalid address: {address}")

    data = _load_json_model(CommitmentFile, commitment)
    try:
        request = data.request_for(hex_to_bytes(address))
    except KeyError as e:
        raise click.ClickException(str(e.args[0]))
    except ValidationError as e:
        raise click.ClickException(f"Malformed claim entry: {e}")

    ok = verify(data.root_bytes, request.index, request.beneficiary, request.share_percent, list(request.proof))
    if ok:
        click.echo(f"✓ Valid: index {request.index}, share {request.share_percent}")
    else:
        click.echo(f"❌ Proof does not match root {data.merkle_root}")
        ctx = click.get_current_context()
        ctx.exit(1)


@cli.command("predict")
@click.option("--factory", "factory_address", required=True, help="Factory address (0x...)")
@click.option("--root", required=True, help="Commitment root (0x...)")
def predict(factory_address, root):
    """Predict the instance address for a commitment root"""
    from fundsplit.core.factory import compute_instance_address
    from fundsplit.crypto import bytes_to_hex, hex_to_bytes
    from fundsplit.utils.validation import validate_hex_string

    for value, name, size in ((factory_address, "factory", 20), (root, "root", 32)):
        valid, err = validate_hex_string(value, name, size)
        if not valid:
            raise click.ClickException(err)

    click.echo(bytes_to_hex(compute_instance_address(hex_to_bytes(factory_address), hex_to_bytes(root))))


# =============================================================================
# Instance Commands
# =============================================================================


@cli.command("instances")
@click.pass_context
def instances(ctx):
    """List instances persisted in the data directory"""
    from fundsplit.core.auction.lifecycle import AuctionPhase
    from fundsplit.core.storage import StorageManager
    from fundsplit.crypto import bytes_to_hex

    config = ctx.obj["config"]
    db_path = ctx.obj["data_dir"] / config.db_name
    if not db_path.exists():
        click.echo("No instances found.")
        return

    storage = StorageManager(ctx.obj["data_dir"], config.db_name)
    try:
        records = storage.list_instances()
        factory_address = storage.get_meta("factory_address")
    finally:
        storage.close()

    if not records:
        click.echo("No instances found.")
        return

    if factory_address:
        click.echo(f"Factory: {factory_address}")
    for record in records:
        click.echo(f"  {bytes_to_hex(record.address)}")
        click.echo(f"    root:    {bytes_to_hex(record.commitment_root)}")
        click.echo(f"    auction: {record.auction_ref} ({AuctionPhase(record.phase).name})")
        click.echo(f"    fund:    {record.generated_fund}")


# =============================================================================
# Demo Command
# =============================================================================


@cli.command("demo")
@click.option("--beneficiaries", default=5, type=click.IntRange(1, 1000), help="Number of beneficiaries")
@click.option("--bid", default=1_000_003, type=click.IntRange(1), help="Winning bid amount")
def demo(beneficiaries, bid):
    """Run an end-to-end in-memory distribution"""
    from fundsplit.core.assets import CollectibleRegistry, TokenLedger
    from fundsplit.core.auction import ReserveAuctionHouse
    from fundsplit.core.distribution import SCALE, build_distribution, dust
    from fundsplit.core.factory import InstanceFactory
    from fundsplit.core.state import Journal
    from fundsplit.crypto import generate_keypair, keccak256, short_hex, to_checksum_address

    click.echo("=" * 60)
    click.echo("  FUNDSPLIT - DEMO")
    click.echo("=" * 60)
    click.echo()

    now = [1_000_000]
    journal = Journal()
    currency = TokenLedger(journal, symbol="WETH")
    collectibles = CollectibleRegistry(journal, name="Art")
    house = ReserveAuctionHouse(journal, clock=lambda: now[0])
    factory = InstanceFactory(keccak256(b"demo-factory")[-20:], house, journal)

    owner = generate_keypair().address
    bidder = generate_keypair().address
    people = [generate_keypair().address for _ in range(beneficiaries)]

    # Equal split; the remainder goes to the first beneficiary
    share = 100 * SCALE // beneficiaries
    allocations = [(address, share) for address in people]
    allocations[0] = (people[0], share + 100 * SCALE - share * beneficiaries)

    click.echo("🌳 Building commitment...")
    commitment = build_distribution(allocations)
    root = commitment.root_bytes
    click.echo(f"  ✓ Root: {commitment.merkle_root}")
    click.echo(f"  ✓ Predicted instance: {to_checksum_address(factory.predict_instance_address(root))}")

    instance_address = factory.create_instance(root, currency, owner)
    instance = factory.get_instance(instance_address)
    click.echo(f"  ✓ Instance created: {to_checksum_address(instance_address)}")
    click.echo()

    click.echo("🔨 Running auction...")
    collectibles.mint(instance_address, 1)
    instance.create_auction(owner, 1, collectibles, 24 * 3600, 1000, bytes(20), 0)
    currency.mint(bidder, bid)
    house.create_bid(instance.auction_ref, bid, bidder)
    now[0] += 25 * 3600
    fund = instance.end_auction(bidder)
    click.echo(f"  ✓ Auction {instance.auction_ref} ended, fund = {fund} {currency.symbol}")
    click.echo()

    click.echo("💸 Claiming shares...")
    for request in commitment.requests():
        amount = instance.claim(*request.as_args())
        click.echo(f"  ✓ #{request.index} {short_hex(request.beneficiary, 12)} received {amount}")
    click.echo()

    click.echo("📊 Final Statistics:")
    for key, value in instance.stats().items():
        click.echo(f"  {key}: {value}")
    click.echo(f"  dust: {dust(fund, [s for _, s in allocations])}")
    click.echo()
    click.echo("✅ Demo complete!")


if __name__ == "__main__":
    cli()
