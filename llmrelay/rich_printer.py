"""
Rich printer module for displaying messages and embeddings.
"""
import json
from typing import Any, List, Optional, Sequence

from rich.console import Console, Group
from rich.markdown import Markdown
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text

from .types import ImagePart, Message, Role, TextPart
from .utils import decode_base64_to_bytes

default_console = Console()


class RichPrinter:
    """
    A class for displaying canonical messages using rich.

    Attributes:
        title: Title for the display panel
        show_metadata: Whether to show id, role and timestamp below the content
        code_theme: Theme for code blocks
        inline_code_theme: Theme for inline code
        border_style: Border style for regular replies
        console: Console to print to
    """

    def __init__(
        self,
        title: str = "Response",
        show_metadata: bool = True,
        code_theme: str = "coffee",
        inline_code_theme: str = "monokai",
        border_style: str = "green",
        console: Optional[Console] = None,
    ):
        self.title = title
        self.show_metadata = show_metadata
        self.code_theme = code_theme
        self.inline_code_theme = inline_code_theme
        self.border_style = border_style
        self.console = console or default_console
        self._message: Optional[Message] = None

    def print_message(self, message: Message) -> Message:
        """
        Display a message with rich formatting.

        System messages, which is how failed chat calls come back, get a red
        border.

        Returns:
            The same message for chaining
        """
        self._message = message

        border_style = "red" if message.role is Role.SYSTEM else self.border_style
        self.console.print(
            Panel(
                self._build_content(message),
                title=self._build_title(message),
                border_style=border_style,
                padding=(1, 2),
            )
        )
        return message

    def _build_title(self, message: Message) -> str:
        return f"[bold]{self.title}[/bold] [dim]({message.role.value})[/dim]"

    def _build_content(self, message: Message) -> Any:
        blocks: List[Any] = []
        for part in message.content:
            if isinstance(part, TextPart):
                if part.text.strip():
                    blocks.append(Markdown(
                        part.text,
                        code_theme=self.code_theme,
                        inline_code_theme=self.inline_code_theme,
                    ))
            else:
                blocks.append(self._image_placeholder(part))

        if not blocks:
            blocks.append(Text("(empty response)", style="dim italic"))

        if self.show_metadata:
            metadata_json = json.dumps(
                {"id": message.id, "role": message.role.value, "created_at": message.created_at},
                indent=2,
            )
            blocks.append(Panel(
                Syntax(metadata_json, "json", theme="lightbulb", background_color="default"),
                title="[bold]Metadata[/bold]",
                border_style="dim",
            ))

        return Group(*blocks)

    @staticmethod
    def _image_placeholder(part: ImagePart) -> Text:
        mime = part.mime_type("image")
        try:
            size = f"{len(decode_base64_to_bytes(part.data))} bytes"
        except ValueError:
            size = "invalid base64"
        return Text(f"[{mime}, {size}]", style="dim")

    def print_embeddings(self, vectors: Sequence[Sequence[float]], preview: int = 5) -> Table:
        """
        Display embedding vectors as a table of dimension and leading values.

        Args:
            vectors: Embedding vectors in input order.
            preview: Number of leading values to show per vector.

        Returns:
            The rendered table.
        """
        table = Table(title="Embeddings", border_style=self.border_style)
        table.add_column("#", justify="right")
        table.add_column("dim", justify="right")
        table.add_column("values")

        for index, vector in enumerate(vectors):
            head = ", ".join(f"{v:.4f}" for v in vector[:preview])
            if len(vector) > preview:
                head += ", ..."
            table.add_row(str(index), str(len(vector)), f"[{head}]")

        if not vectors:
            table.add_row("-", "0", "(no vectors)")

        self.console.print(table)
        return table

    def get_message(self) -> Optional[Message]:
        """Get the last printed message."""
        return self._message

    def get_text(self) -> str:
        """Get the text of the last printed message."""
        return self._message.text if self._message else ""
