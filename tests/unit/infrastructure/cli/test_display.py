import io

import pytest
from unittest.mock import MagicMock
from rich.console import Console
from rich.panel import Panel

from intraclient.infrastructure.cli.display import ConsoleDisplay

@pytest.fixture
def mock_console():
    """Fixture to create a mock rich Console object."""
    return MagicMock()

@pytest.fixture
def console_display(mock_console: MagicMock):
    """Fixture to create a ConsoleDisplay instance with a mocked console."""
    return ConsoleDisplay(console=mock_console)

@pytest.fixture
def recording_display():
    """ConsoleDisplay writing plain text into a buffer."""
    buffer = io.StringIO()
    console = Console(file=buffer, width=200, color_system=None, force_terminal=False)
    return ConsoleDisplay(console=console), buffer

def test_display_output_json(console_display: ConsoleDisplay, mock_console: MagicMock):
    """Payloads are rendered with print_json."""
    console_display.display_output([{"login": "norminet"}])
    mock_console.print_json.assert_called_once_with('[{"login": "norminet"}]')

def test_display_output_text(console_display: ConsoleDisplay, mock_console: MagicMock):
    """Text bodies are printed without markup processing."""
    console_display.display_output("filter[login] ok")
    mock_console.print.assert_called_once_with("filter[login] ok", markup=False, highlight=False)

def test_display_output_none(recording_display):
    display, buffer = recording_display
    display.display_output(None)
    assert buffer.getvalue().strip() == "null"

def test_display_output_title_and_json(recording_display):
    display, buffer = recording_display
    display.display_output({"id": 1}, title="Result")
    output = buffer.getvalue()
    assert output.startswith("Result")
    assert '"id": 1' in output

def test_display_error(console_display: ConsoleDisplay, mock_console: MagicMock):
    """Errors are shown in a red panel."""
    console_display.display_error("Something went wrong")
    mock_console.print.assert_called_once()
    panel = mock_console.print.call_args.args[0]
    assert isinstance(panel, Panel)
    assert panel.title == "Error"
    assert panel.border_style == "red"

def test_display_error_with_details(recording_display):
    display, buffer = recording_display
    display.display_error("GET https://api.intra.42.fr/v2/users - HTTP 404 Not Found", details='{"error": "[x]"}')
    output = buffer.getvalue()
    assert "HTTP 404 Not Found" in output
    assert '{"error": "[x]"}' in output

def test_display_info(recording_display):
    display, buffer = recording_display
    display.display_info("3 items [partial]")
    assert buffer.getvalue().strip() == "3 items [partial]"
