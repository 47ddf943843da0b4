import typer

from schoolhub.cli.db import db_app
from schoolhub.cli.resources import resources
from schoolhub.cli.serve import serve

app = typer.Typer(
    name="schoolhub",
    help="SchoolHub CLI: serve and inspect the school records API.",
    no_args_is_help=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)

app.add_typer(db_app, name="db")
app.command("serve")(serve)
app.command("resources")(resources)


def main() -> None:
    app()
