"""CLI interface for inspecting and editing agent memories."""

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..context.selector import resolve_model
from ..memory.types import Memory
from ..memory.usecase import MemoryUseCase
from ..storage.conversations import ChatMessage


console = Console()

USAGE = [
    ("stats AGENT", "Show memory statistics for an agent"),
    ("list AGENT", "List an agent's memories"),
    ("search AGENT QUERY", "Retrieve memories relevant to QUERY"),
    ("relations MEMORY_ID", "Show relations of a memory"),
    ("remember AGENT TEXT", "Run TEXT through memory ingestion"),
    ("feedback MEMORY_ID up|down", "Nudge a memory's importance"),
    ("forget MEMORY_ID", "Delete a memory"),
    ("context AGENT CONVERSATION TEXT [MODEL]", "Preview the prompt context"),
]


class MemoryCLI:
    """
    Command dispatcher over a MemoryUseCase.

    Commands:
    - stats, list, search, relations - Inspect memories
    - remember, feedback, forget - Change memories
    - context - Preview what the next model call would receive
    """

    def __init__(self, usecase: MemoryUseCase, default_model: str = "GEMINI_PRO"):
        self.usecase = usecase
        self.default_model = default_model

    async def run(self, argv: list[str]) -> int:
        """
        Handle one command.

        Returns:
            Process exit code
        """
        if not argv:
            self._show_help()
            return 1

        cmd = argv[0].lower()
        args = argv[1:]

        if cmd in ["help", "-h", "--help"]:
            self._show_help()

        elif cmd == "stats" and len(args) == 1:
            await self._show_stats(args[0])

        elif cmd == "list" and len(args) == 1:
            self._show_memories(f"Memories of {args[0]}", await self.usecase.list_memories(args[0]))

        elif cmd == "search" and len(args) >= 2:
            query = " ".join(args[1:])
            memories = await self.usecase.search_memories(args[0], query)
            self._show_memories(f"Results for '{query}'", memories)

        elif cmd == "relations" and len(args) == 1:
            await self._show_relations(args[0])

        elif cmd == "remember" and len(args) >= 2:
            await self._remember(args[0], " ".join(args[1:]))

        elif cmd == "feedback" and len(args) == 2 and args[1] in ["up", "down"]:
            await self.usecase.update_memory_feedback(args[0], args[1] == "up")
            console.print(f"[green]Feedback recorded for {args[0]}.[/green]")

        elif cmd == "forget" and len(args) == 1:
            if await self.usecase.forget(args[0]):
                console.print(f"[green]Forgot {args[0]}.[/green]")
            else:
                console.print(f"[yellow]No memory {args[0]}.[/yellow]")

        elif cmd == "context" and len(args) >= 3:
            model = args[3] if len(args) > 3 else self.default_model
            await self._show_context(args[0], args[1], args[2], model)

        else:
            console.print(f"[red]Unknown or incomplete command: {' '.join(argv)}[/red]")
            self._show_help()
            return 1

        return 0

    def _show_help(self):
        """Display help information."""
        help_table = Table(title="Available Commands", show_header=True)
        help_table.add_column("Command", style="cyan")
        help_table.add_column("Description")

        for command, description in USAGE:
            help_table.add_row(command, description)

        console.print(help_table)

    async def _show_stats(self, agent_id: str):
        stats = await self.usecase.get_memory_statistics(agent_id)

        table = Table(title=f"Memory Statistics: {agent_id}", show_header=False)
        table.add_column("Metric", style="cyan")
        table.add_column("Value", style="green")

        table.add_row("Total", str(stats.total))
        table.add_row("Important (> 0.7)", str(stats.important))
        table.add_row("Recent (< 7 days)", str(stats.recent))
        table.add_row("Average importance", f"{stats.average_importance:.2f}")
        if stats.most_accessed:
            table.add_row(
                "Most accessed",
                f"{stats.most_accessed.id} ({stats.most_accessed.access_count}x)",
            )
        for memory_type, count in stats.type_distribution.items():
            table.add_row(f"Type: {memory_type.value}", str(count))

        console.print(table)

    def _show_memories(self, title: str, memories: list[Memory]):
        if not memories:
            console.print("[dim]No memories.[/dim]")
            return

        table = Table(title=title, show_header=True)
        table.add_column("ID", style="dim")
        table.add_column("Type", width=12)
        table.add_column("Imp.", width=5)
        table.add_column("Hits", width=5)
        table.add_column("Content")
        table.add_column("Tags", style="cyan")

        for mem in memories:
            table.add_row(
                mem.id,
                mem.type.value,
                f"{mem.importance:.2f}",
                str(mem.access_count),
                mem.content,
                ", ".join(mem.tags),
            )

        console.print(table)

    async def _show_relations(self, memory_id: str):
        relations = await self.usecase.get_memory_relations(memory_id)
        if not relations:
            console.print("[dim]No relations.[/dim]")
            return

        table = Table(title=f"Relations of {memory_id}", show_header=True)
        table.add_column("Source", style="dim")
        table.add_column("Target", style="dim")
        table.add_column("Type")
        table.add_column("Strength", width=8)

        for rel in relations:
            table.add_row(rel.source_id, rel.target_id, rel.type.value, f"{rel.strength:.2f}")

        console.print(table)

    async def _remember(self, agent_id: str, text: str):
        message = ChatMessage.create(conversation_id=f"cli-{agent_id}", content=text)
        if await self.usecase.process_message_for_memory(agent_id, message):
            console.print("[green]Remembered.[/green]")
        else:
            console.print("[yellow]Not important enough to remember.[/yellow]")

    async def _show_context(self, agent_id: str, conversation_id: str, text: str, model: str):
        context = await self.usecase.build_prompt_context(agent_id, conversation_id, text, model)

        if context.memory_text:
            console.print(Panel(context.memory_text.rstrip(), title="Memories", border_style="cyan"))
        else:
            console.print("[dim]No memories apply.[/dim]")

        budget = self.usecase.allocator.available_budget(model)
        console.print(
            f"[dim]{resolve_model(model).name}: {len(context.messages)} history messages "
            f"within {budget:.0f} tokens[/dim]"
        )
        for i, msg in enumerate(context.messages):
            console.print(Panel(
                msg.content[:500] + ("..." if len(msg.content) > 500 else ""),
                title=f"[{i+1}] {msg.sender.value}",
                border_style="green",
            ))
