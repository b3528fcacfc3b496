"""CLI interface for deploying static sites to UPYUN."""

import logging
from pathlib import Path
from typing import Any, Optional

import click

from .api import UpyunClient
from .config import ENV_BUCKET, ENV_OPERATOR, ENV_PASSWORD, config, env_value
from .exceptions import UpyunConfigError, UpyunError
from .output import OutputFormatter
from .sync import (
    DEFAULT_CONFIG_FILE_NAME,
    DeployConfig,
    DeployEngine,
    DirectoryScanner,
    ManifestState,
    compute_diff,
    display_plan,
    load_deploy_config_from_json,
    parse_try_times,
    validate_pattern,
)
from .sync.manifest import MANIFEST_FILE_NAME

logger = logging.getLogger(__name__)


def resolve_deploy_config(
    public_dir: Optional[str],
    bucket: Optional[str],
    operator: Optional[str],
    password: Optional[str],
    config_path: Optional[str],
    ignore_file: Optional[str],
    ignore_dir: Optional[str],
    try_times: Optional[str],
) -> DeployConfig:
    """Merge command line options, environment and config files.

    Precedence is command line, then environment, then the deploy JSON file,
    then the credentials saved by ``pyupyun init``.

    Raises:
        UpyunConfigError: If a config file or value is invalid, or a
            credential is missing
    """
    if config_path is not None:
        deploy_config = load_deploy_config_from_json(Path(config_path))
    elif Path(DEFAULT_CONFIG_FILE_NAME).is_file():
        deploy_config = load_deploy_config_from_json(Path(DEFAULT_CONFIG_FILE_NAME))
    else:
        deploy_config = DeployConfig()

    deploy_config.bucket = (
        bucket
        or env_value(ENV_BUCKET)
        or deploy_config.bucket
        or config.get_saved(ENV_BUCKET)
    )
    deploy_config.operator = (
        operator
        or env_value(ENV_OPERATOR)
        or deploy_config.operator
        or config.get_saved(ENV_OPERATOR)
    )
    deploy_config.password = (
        password
        or env_value(ENV_PASSWORD)
        or deploy_config.password
        or config.get_saved(ENV_PASSWORD)
    )

    if public_dir is not None:
        deploy_config.public_dir = public_dir
    if ignore_file is not None:
        validate_pattern(ignore_file, "--ignore-file")
        deploy_config.ignore_file = ignore_file or None
    if ignore_dir is not None:
        validate_pattern(ignore_dir, "--ignore-dir")
        deploy_config.ignore_dir = ignore_dir or None
    if try_times is not None:
        deploy_config.try_times = parse_try_times(try_times)

    deploy_config.require_credentials()
    return deploy_config


def deploy_options(func: Any) -> Any:
    """Options shared by the deploy and status commands."""
    options = [
        click.argument("public_dir", required=False, type=click.Path()),
        click.option("--bucket", "-b", help="UPYUN bucket (service) name"),
        click.option("--operator", "-o", help="UPYUN operator name"),
        click.option("--password", "-p", help="UPYUN operator password"),
        click.option(
            "--config",
            "-c",
            "config_path",
            type=click.Path(exists=True, dir_okay=False),
            help=f"Deploy config JSON (default: ./{DEFAULT_CONFIG_FILE_NAME})",
        ),
        click.option(
            "--ignore-file",
            help="Regular expression for relative file paths to skip",
        ),
        click.option(
            "--ignore-dir",
            help="Regular expression for relative directory paths to skip",
        ),
        click.option(
            "--initial",
            is_flag=True,
            help="Allow a bucket without a deployed file list (first deploy)",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group()
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(package_name="pyupyun")
@click.pass_context
def main(ctx: Any, quiet: bool, json: bool, verbose: bool) -> None:
    """PyUpyun - Incrementally deploy a static site directory to UPYUN."""
    ctx.ensure_object(dict)
    ctx.obj["out"] = OutputFormatter(json_output=json, quiet=quiet)
    ctx.obj["verbose"] = verbose

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("pyupyun").setLevel(logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)


@main.command()
@click.option("--bucket", "-b", prompt="UPYUN bucket", help="UPYUN bucket name")
@click.option("--operator", "-o", prompt="UPYUN operator", help="Operator name")
@click.option(
    "--password",
    "-p",
    prompt="UPYUN password",
    hide_input=True,
    help="Operator password",
)
@click.pass_context
def init(ctx: Any, bucket: str, operator: str, password: str) -> None:
    """Save UPYUN credentials.

    Stores the credentials in ~/.config/pyupyun/config for future deploys.
    """
    out: OutputFormatter = ctx.obj["out"]

    try:
        if config.is_configured():
            out.warning(
                f"Credentials are already configured, saved values in "
                f"{config.get_config_path()} will be replaced"
            )
        out.info("Validating credentials...")
        with UpyunClient(bucket=bucket, operator=operator, password=password) as client:
            result = client.get_file(MANIFEST_FILE_NAME)

        if result.ok:
            out.success("✓ Credentials are valid, found a deployed file list")
        elif result.missing:
            out.success("✓ Credentials are valid, bucket has no deployed file list")
            out.info("Run 'pyupyun deploy --initial' for the first deploy")
        else:
            out.error(f"Credential validation failed: {result}")
            if not click.confirm("Save credentials anyway?", default=False):
                out.warning("Configuration cancelled.")
                ctx.exit(1)

        config.save_credentials(bucket, operator, password)
        out.print_summary(
            "Initialization Complete",
            [
                ("Status", "✓ Configuration saved successfully"),
                ("Config file", str(config.get_config_path())),
            ],
        )
    except UpyunError as e:
        out.error(f"Initialization failed: {e}")
        ctx.exit(1)


@main.command()
@deploy_options
@click.option(
    "--try-times",
    help="Attempts for removing a directory (default: 5)",
)
@click.option(
    "--dry-run", is_flag=True, help="Show what would change without deploying"
)
@click.pass_context
def deploy(
    ctx: Any,
    public_dir: Optional[str],
    bucket: Optional[str],
    operator: Optional[str],
    password: Optional[str],
    config_path: Optional[str],
    ignore_file: Optional[str],
    ignore_dir: Optional[str],
    initial: bool,
    try_times: Optional[str],
    dry_run: bool,
) -> None:
    """Deploy PUBLIC_DIR to the bucket, uploading only what changed.

    PUBLIC_DIR defaults to the public_dir of the deploy config, or ./public.

    Examples:
        pyupyun deploy public -b my-site -o deployer
        pyupyun deploy --initial                  # First deploy to a bucket
        pyupyun deploy --dry-run                  # Preview changes
        pyupyun deploy --ignore-file '\\.map$'     # Skip source maps
    """
    out: OutputFormatter = ctx.obj["out"]

    try:
        deploy_config = resolve_deploy_config(
            public_dir,
            bucket,
            operator,
            password,
            config_path,
            ignore_file,
            ignore_dir,
            try_times,
        )
        scanner = DirectoryScanner(
            file_exclude=deploy_config.ignore_file,
            dir_exclude=deploy_config.ignore_dir,
        )
        local_root = Path(deploy_config.public_dir)

        out.info(f"Deploying {local_root} to bucket {deploy_config.bucket}")
        if dry_run:
            out.info("Dry run: No changes will be made")

        with UpyunClient(
            bucket=deploy_config.bucket,
            operator=deploy_config.operator,
            password=deploy_config.password,
        ) as client:
            engine = DeployEngine(client, out, try_times=deploy_config.try_times)
            stats = engine.deploy(
                local_root,
                scanner=scanner,
                allow_missing_manifest=initial,
                dry_run=dry_run,
            )

        if out.json_output:
            out.output_json({"dry_run": dry_run, **stats})
    except UpyunError as e:
        out.error(f"Deploy failed: {e}")
        ctx.exit(1)


@main.command()
@deploy_options
@click.pass_context
def status(
    ctx: Any,
    public_dir: Optional[str],
    bucket: Optional[str],
    operator: Optional[str],
    password: Optional[str],
    config_path: Optional[str],
    ignore_file: Optional[str],
    ignore_dir: Optional[str],
    initial: bool,
) -> None:
    """Show the changes the next deploy of PUBLIC_DIR would make."""
    out: OutputFormatter = ctx.obj["out"]

    try:
        deploy_config = resolve_deploy_config(
            public_dir,
            bucket,
            operator,
            password,
            config_path,
            ignore_file,
            ignore_dir,
            None,
        )
        scanner = DirectoryScanner(
            file_exclude=deploy_config.ignore_file,
            dir_exclude=deploy_config.ignore_dir,
        )

        with UpyunClient(
            bucket=deploy_config.bucket,
            operator=deploy_config.operator,
            password=deploy_config.password,
        ) as client:
            remote = ManifestState(client).fetch(allow_missing=initial)
        local = scanner.scan(Path(deploy_config.public_dir))
        diff = compute_diff(remote, local)

        if out.json_output:
            out.output_json(diff.to_dict())
            return

        display_plan(out, diff, dry_run=True)
    except UpyunConfigError as e:
        out.error(f"Configuration error: {e}")
        ctx.exit(1)
    except UpyunError as e:
        out.error(f"Status failed: {e}")
        ctx.exit(1)


if __name__ == "__main__":
    main()
