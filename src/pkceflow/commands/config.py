"""Config commands -- view and modify the stored client configuration.

Provides the ``pkceflow config`` sub-command group for reading, updating,
and resetting the stored config file
(:class:`~pkceflow.models.StoredConfig`). Stored values are the lowest
precedence source for ``pkceflow login``; flags and ``PKCEFLOW_*``
environment variables override them.
"""

from __future__ import annotations

import typer

from pkceflow.output import error, format_response, info, success


config_app = typer.Typer(no_args_is_help=True)


@config_app.command("show")
def config_show() -> None:
    """Show the stored configuration.

    Example::

        pkceflow config show
        pkceflow --json config show
    """
    from pkceflow.config import config_path, load_stored_config
    from pkceflow.exceptions import ConfigError

    try:
        config = load_stored_config()
    except ConfigError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
    info(f"Config file: {config_path()}")
    format_response(config.model_dump(mode="json"))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(
        help="Config key: client_id, authorization_url, token_url, "
        "redirect_uri, scopes, callback_timeout."
    ),
    value: str = typer.Argument(help="Value to set."),
) -> None:
    """Set a stored configuration value.

    ``scopes`` takes a space- or comma-separated list; ``callback_timeout``
    takes a number of seconds. The updated config is validated against
    :class:`~pkceflow.models.StoredConfig` before saving.

    Raises:
        typer.Exit: With code 2 if the key is unknown or the value fails
            validation.

    Example::

        pkceflow config set client_id my-app
        pkceflow config set scopes "openid profile"
        pkceflow config set callback_timeout 300
    """
    from pkceflow.config import load_stored_config, save_stored_config, split_scopes
    from pkceflow.exceptions import ConfigError
    from pkceflow.models import StoredConfig

    if key not in StoredConfig.model_fields:
        error(f"Unknown config key: {key}")
        raise typer.Exit(code=2)

    try:
        config = load_stored_config()
    except ConfigError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    data = config.model_dump(mode="json")
    data[key] = split_scopes(value) if key == "scopes" else value

    try:
        new_config = StoredConfig.model_validate(data)
    except ValueError as exc:
        error(f"Validation error: {exc}")
        raise typer.Exit(code=2) from None

    save_stored_config(new_config)
    success(f"Set {key} = {getattr(new_config, key)}")


@config_app.command("reset")
def config_reset(ctx: typer.Context) -> None:
    """Delete the stored configuration.

    Asks for confirmation unless ``--force`` is active.

    Example::

        pkceflow config reset
        pkceflow --force config reset
    """
    from pkceflow.config import delete_stored_config

    force = ctx.obj.get("force", False) if ctx.obj else False
    if not force:
        confirmed = typer.confirm("Delete the stored configuration?")
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    if delete_stored_config():
        success("Stored configuration deleted.")
    else:
        info("No stored configuration to delete.")
