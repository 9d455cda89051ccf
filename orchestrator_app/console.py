from llm_orchestrator.errors import user_message
from llm_orchestrator.types import ModelDescriptor


class Colors:
    BLUE = '\033[94m'
    GREEN = '\033[92m'
    YELLOW = '\033[93m'
    RED = '\033[91m'
    CYAN = '\033[96m'
    GRAY = '\033[90m'
    RESET = '\033[0m'


def print_colored(text: str, color: str = Colors.RESET) -> None:
    print(f"{color}{text}{Colors.RESET}")


def print_error(error: Exception) -> None:
    """Print the short summary for an error followed by its detail."""
    print_colored(f"❌ {user_message(error)}: {error}", Colors.RED)


def format_model(model: ModelDescriptor, current: bool = False) -> str:
    marker = "→" if current else " "
    details = ", ".join(part for part in (model.size, model.parameters, model.quantization) if part)
    return f" {marker} {model.name} ({details})" if details else f" {marker} {model.name}"


def get_user_confirmation(prompt: str) -> bool:
    """Ask user for yes/no confirmation in the console."""
    while True:
        try:
            response = input(f"{prompt} (y/n): ").strip().lower()
        except EOFError:
            return False
        if response in ["y", "yes"]:
            return True
        if response in ["n", "no"]:
            return False
        print("Please answer 'y' or 'n'")
