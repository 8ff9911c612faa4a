#!/usr/bin/env python3
"""Interactive chat CLI for the brief conversation service."""

import sys

import httpx
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.prompt import Prompt


class ChatCLI:
    """Interactive chat interface for the brief service."""

    def __init__(self, base_url: str = "http://localhost:9001"):
        """Initialize chat CLI."""
        self.base_url = base_url
        self.conversation_id: str | None = None
        self.paste_counter = 0
        self.pending_paste: str | None = None
        self.console = Console()
        self.client = httpx.Client(timeout=120.0)

    def start(self) -> None:
        """Start the interactive chat session."""
        self.console.print(
            Panel.fit(
                "[bold blue]brief - Interactive Chat[/bold blue]\n"
                "Type your messages to chat with the assistant.\n"
                "Commands: /help, /context, /compact, /paste, /new, /quit",
                border_style="blue",
            )
        )

        if not self._test_connection():
            self.console.print("[red]Cannot connect to the service. Make sure it's running.[/red]")
            return

        self.console.print("[green]Connected to brief service[/green]\n")

        try:
            while True:
                user_input = Prompt.ask("\n[bold cyan]You[/bold cyan]")
                command = user_input.strip().lower()

                if command in ["/quit", "/exit", "quit", "exit"]:
                    break
                elif command == "/help":
                    self._show_help()
                    continue
                elif command == "/new":
                    self.conversation_id = None
                    self.console.print("[yellow]Started a new conversation[/yellow]")
                    continue
                elif command == "/context":
                    self._show_context()
                    continue
                elif command == "/compact":
                    self._compact()
                    continue
                elif command == "/paste":
                    self._read_paste()
                    continue
                elif command == "" and self.pending_paste is None:
                    continue

                message = user_input
                if self.pending_paste is not None:
                    message = f"{user_input}\n\n{self.pending_paste}".strip()
                    self.pending_paste = None

                response = self._send_message(message)
                if response:
                    self._display_response(response)

        except KeyboardInterrupt:
            pass
        finally:
            self.console.print("\n[yellow]Goodbye![/yellow]")
            self.client.close()

    def _test_connection(self) -> bool:
        """Test connection to the service."""
        try:
            response = self.client.get(f"{self.base_url}/health")
            return response.status_code == 200
        except httpx.HTTPError:
            return False

    def _send_message(self, message: str) -> dict | None:
        """Send a message to the service."""
        payload = {"message": message}
        if self.conversation_id:
            payload["conversation_id"] = self.conversation_id

        self.console.print("[dim]Thinking...[/dim]", end="")
        try:
            response = self.client.post(f"{self.base_url}/conversation", json=payload)
        except httpx.HTTPError as e:
            self.console.print(f"\n[red]Connection error: {e}[/red]")
            return None
        finally:
            self.console.print("\r" + " " * 20 + "\r", end="\n")

        if response.status_code != 200:
            self.console.print(f"[red]API Error: {response.status_code} - {response.text}[/red]")
            return None

        data = response.json()
        self.conversation_id = data.get("conversation_id")
        return data

    def _read_paste(self) -> None:
        """Read a multi-line paste terminated by a line containing only '.'."""
        self.console.print("[dim]Paste text, then a line with a single '.' to finish.[/dim]")
        lines = []
        while True:
            line = input()
            if line == ".":
                break
            lines.append(line)

        self.paste_counter += 1
        try:
            response = self.client.post(
                f"{self.base_url}/paste", json={"text": "\n".join(lines), "index": self.paste_counter}
            )
        except httpx.HTTPError as e:
            self.console.print(f"[red]Connection error: {e}[/red]")
            return

        if response.status_code != 200:
            self.console.print(f"[red]API Error: {response.status_code} - {response.text}[/red]")
            return

        data = response.json()
        self.pending_paste = data["actual_text"]
        self.console.print(
            f"[cyan]{data['display_text']}[/cyan] [dim]({data['line_count']} lines, sent with your next message)[/dim]"
        )

    def _show_context(self) -> None:
        """Show context window usage for the current conversation."""
        if not self.conversation_id:
            self.console.print("[dim]No conversation yet.[/dim]")
            return

        response = self.client.get(f"{self.base_url}/conversation/{self.conversation_id}/context")
        if response.status_code != 200:
            self.console.print(f"[red]API Error: {response.status_code} - {response.text}[/red]")
            return

        self._print_context(response.json())

    def _compact(self) -> None:
        """Ask the service to compact the conversation history."""
        if not self.conversation_id:
            self.console.print("[dim]No conversation yet.[/dim]")
            return

        response = self.client.post(f"{self.base_url}/conversation/{self.conversation_id}/compact", json={})
        if response.status_code != 200:
            self.console.print(f"[red]API Error: {response.status_code} - {response.text}[/red]")
            return

        data = response.json()
        if not data["was_trimmed"]:
            self.console.print("[dim]History fits, nothing compacted.[/dim]")
        elif data["was_truncated"]:
            self.console.print(f"[yellow]History truncated ({data['message_count']} messages left)[/yellow]")
        else:
            self.console.print(f"[green]History summarized ({data['message_count']} messages left)[/green]")

    def _print_context(self, context: dict) -> None:
        style = "red" if context["near_limit"] else "dim"
        self.console.print(
            f"[{style}]{context['model']}: {context['usage_percent']}% of {context['context_size']} tokens used, "
            f"{context['remaining_tokens']} remaining[/{style}]"
        )

    def _display_response(self, response: dict) -> None:
        """Display the assistant's reply."""
        assistant_text = response.get("response", "No response")
        border = "red" if assistant_text.startswith("ERROR") else "green"

        self.console.print(
            Panel(
                Markdown(assistant_text),
                title=f"[bold {border}]Assistant[/bold {border}]",
                border_style=border,
                padding=(1, 2),
            )
        )
        if response.get("context", {}).get("near_limit"):
            self._print_context(response["context"])

    def _show_help(self) -> None:
        """Show help information."""
        help_text = """
[bold]Available Commands:[/bold]
• /help - Show this help message
• /context - Show context window usage
• /compact - Summarize older history if the context is tight
• /paste - Paste multi-line text to send with the next message
• /new - Start a new conversation
• /quit or /exit - Exit the chat
        """

        self.console.print(Panel(help_text.strip(), title="[cyan]Help[/cyan]", border_style="cyan"))


def main():
    """Main entry point for the chat CLI."""
    base_url = sys.argv[1] if len(sys.argv) > 1 else "http://localhost:9001"

    chat = ChatCLI(base_url)
    chat.start()


if __name__ == "__main__":
    main()
