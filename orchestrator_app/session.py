import logging
from typing import Callable, Dict

from llm_orchestrator.agent import Agent
from llm_orchestrator.errors import OrchestratorError
from .console import Colors, format_model, get_user_confirmation, print_colored, print_error


logger = logging.getLogger(__name__)


class ChatSession:
    """Interactive console front-end for the Agent."""

    def __init__(self, agent: Agent, config) -> None:
        self.agent = agent
        self.config = config
        self.commands: Dict[str, Callable[[str], None]] = {
            '/models': self._list_models,
            '/available': self._list_available,
            '/pull': self._pull,
            '/delete': self._delete,
            '/switch': self._switch,
            '/health': self._health,
            '/stats': self._stats,
            '/memory': self._memory,
        }

    def _print_header(self) -> None:
        print_colored("╔════════════════════════════════════════════╗", Colors.CYAN)
        print_colored("║        🧠 Local LLM Orchestrator          ║", Colors.CYAN)
        print_colored("╚════════════════════════════════════════════╝", Colors.CYAN)
        print_colored(f"\nModel: {self.agent.current_model}", Colors.BLUE)
        print_colored(f"Endpoint: {self.config.base_url}", Colors.BLUE)
        print_colored(f"Session: {self.config.session_id}", Colors.BLUE)
        print_colored(f"Memory: {self.agent.get_memory_summary()}", Colors.BLUE)
        print_colored("\nType 'exit', 'quit', or 'bye' to end the conversation.", Colors.YELLOW)
        print_colored("Type 'clear' to clear conversation history.", Colors.YELLOW)
        print_colored(f"Commands: {', '.join(self.commands)}\n", Colors.YELLOW)

    def _list_models(self, _: str) -> None:
        listing = self.agent.list_models()
        if listing.error:
            note = "showing cached listing" if listing.stale else "no models to show"
            print_colored(f"⚠️  Could not refresh models ({note}): {listing.error}", Colors.YELLOW)
        for model in sorted(listing.models, key=lambda m: m.name):
            print_colored(format_model(model, current=model.name == self.agent.current_model), Colors.GREEN)

    def _list_available(self, _: str) -> None:
        print_colored("📋 Available Models:", Colors.CYAN)
        for model in self.agent.list_available_models():
            status = "✅ Downloaded" if model.downloaded else "⬇️  Available"
            print_colored(f"  • {model.name} ({model.size}) - {status}", Colors.BLUE)

    def _pull(self, name: str) -> None:
        print_colored(f"⬇️  Pulling {name}, this can take a while...", Colors.CYAN)
        print_colored(f"✨ {self.agent.pull_model(name)}", Colors.GREEN)

    def _delete(self, name: str) -> None:
        if not get_user_confirmation(f"   Delete model '{name}'?"):
            print_colored("   Delete cancelled", Colors.YELLOW)
            return
        print_colored(f"🗑️  {self.agent.delete_model(name)}", Colors.GREEN)

    def _switch(self, name: str) -> None:
        print_colored(f"🔄 {self.agent.switch_model(name)}: {self.agent.current_model}", Colors.GREEN)

    def _health(self, _: str) -> None:
        status = self.agent.check_health()
        color = Colors.GREEN if status.healthy else Colors.RED
        label = "Healthy" if status.healthy else "Unhealthy"
        print_colored(f"📋 {label} - {status.message}", color)
        print_colored(f"⏱️  Response time: {status.elapsed * 1000:.0f}ms ({status.model})", Colors.BLUE)
        print_colored(f"🧠 Memory: {status.memory_summary}", Colors.BLUE)
        if status.error:
            print_colored(f"   {status.error}", Colors.GRAY)

    def _stats(self, _: str) -> None:
        stats = self.agent.get_system_stats()
        print_colored(f"📊 Success rate: {stats['success_rate']}%", Colors.BLUE)
        print_colored(f"🔄 Total requests: {stats['total_requests']} "
                      f"({stats['successful_requests']} ok, {stats['failed_requests']} failed)", Colors.BLUE)
        print_colored(f"⏱️  Average response time: {stats['average_response_time']:.2f}s", Colors.BLUE)
        print_colored(f"🕒 Uptime: {stats['uptime']:.0f}s", Colors.BLUE)

    def _memory(self, _: str) -> None:
        print_colored(f"🧠 Memory: {self.agent.get_memory_summary()}", Colors.BLUE)

    def handle(self, user_input: str) -> None:
        """Run one line of input: a command or a chat message."""
        command, _, argument = user_input.partition(' ')
        handler = self.commands.get(command.lower())
        try:
            if handler:
                handler(argument.strip())
                return
            response = self.agent.run(user_input)
            print(f"{Colors.BLUE}Assistant: {Colors.RESET}{response}")
        except OrchestratorError as e:
            logger.debug(f"Command failed: {e!r}")
            print_error(e)

    def run(self) -> None:
        self._print_header()

        try:
            while True:
                try:
                    user_input = input(f"{Colors.GREEN}You [{self.agent.current_model}]: {Colors.RESET}").strip()
                except EOFError:
                    break

                if not user_input:
                    continue
                if user_input.lower() in ['exit', 'quit', 'bye']:
                    print_colored("\n👋 Goodbye!", Colors.CYAN)
                    break
                if user_input.lower() == 'clear':
                    self.agent.clear_memory()
                    print_colored("✨ Conversation history cleared.", Colors.YELLOW)
                    continue

                self.handle(user_input)
                print()
        except KeyboardInterrupt:
            print_colored("\n\n👋 Interrupted. Goodbye!", Colors.CYAN)
