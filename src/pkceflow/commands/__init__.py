"""Built-in CLI sub-commands for pkceflow.

* :mod:`~pkceflow.commands.login` -- run the authorization code flow.
* :mod:`~pkceflow.commands.config` -- view and modify stored settings.

``login`` is a plain callback registered directly on the root app;
``config`` exports a :class:`typer.Typer` sub-application.
"""
