"""Fill colors used to annotate rendered modules."""

from dataclasses import dataclass

BLUE = "#76E1FE"
GREEN = "green"
ORANGE = "#fcd92d"
RED = "red"


@dataclass(frozen=True)
class Palette:
    """One fill color per node condition.

    The conditions are independent: a node that is both a root and broken
    is drawn with both colors as stripes.
    """

    user_keep: str = BLUE
    root: str = GREEN
    single_parent: str = ORANGE
    broken: str = RED

    def legend(self) -> list[tuple[str, str, str]]:
        """Get (key, color, description) rows for the graph legend."""
        return [
            ("userKeep", self.user_keep, "kept module (per your command-line flags)"),
            ("root", self.root, "root module (per your command-line args)"),
            ("singleParent", self.single_parent, "only imported by 1 other module"),
            ("broken", self.broken, "could not resolve this module's imports"),
        ]
