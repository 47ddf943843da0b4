from rich.console import Console
from rich.table import Table

from schoolhub.api.routes.root import camel_to_kebab
from schoolhub.resources.configs import build_registry

console = Console()


def resources() -> None:
    """List the registered API resources."""
    registry = build_registry()
    table = Table(show_lines=False)
    for header in ("resource", "route", "model", "operations", "filters"):
        table.add_column(header)
    for config in registry:
        table.add_row(
            config.resource_name,
            f"/api/{camel_to_kebab(config.plural_name)}",
            config.model,
            ", ".join(sorted(op.value for op in config.operations)),
            ", ".join(sorted(config.filter_fields)),
        )
    console.print(table)
    console.print(f"({len(registry)} resources)")
