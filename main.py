"""Console entrypoint."""

from __future__ import annotations

import logging
import sys
from typing import Callable, Optional, TextIO

from config import JsonConfigStore
from errors import message_for
from interfaces import ConfigStore, Scheduler, SpeechEngine
from models import Mode, ShoppingItem
from recognizer import DashscopeSpeechEngine
from shopper import VoiceShopper

HELP = """Commands:
  add            start adding items by voice (say "that's it" when finished)
  shop           start shopping mode and check items off by voice
  stop           stop listening
  list           show the list grouped by category
  toggle N       toggle item N
  remove N       remove item N
  clear          clear the list
  save           save the list to history
  history        show saved lists
  load N         load saved list N
  key VALUE      set the DashScope API key
  quit           exit"""


class ConsoleApp:
    def __init__(
        self,
        config_store: Optional[ConfigStore] = None,
        engine_factory: Optional[Callable[[], SpeechEngine]] = None,
        scheduler: Optional[Scheduler] = None,
        output: Callable[[str], None] = print,
    ) -> None:
        self.config_store = config_store or JsonConfigStore()
        self._output = output
        if engine_factory is None:
            api_key = self.config_store.get_api_key()
            language = self.config_store.get_language()

            def engine_factory() -> SpeechEngine:
                return DashscopeSpeechEngine(api_key=api_key, language=language)

        self.shopper = VoiceShopper(
            engine_factory=engine_factory,
            scheduler=scheduler,
            settings=self.config_store.get_settings(),
            on_items_added=self._on_items_added,
            on_nothing_recognized=self._on_nothing_recognized,
            on_items_completed=self._on_items_completed,
            on_all_complete=self._on_all_complete,
            on_recognition_error=self._on_error,
            on_mode_change=self._on_mode_change,
            on_interim=self._on_interim,
        )

    # ------------------------------------------------------------------
    # Shopper events
    # ------------------------------------------------------------------

    def _on_items_added(self, batch: list[ShoppingItem]) -> None:
        plural = "s" if len(batch) > 1 else ""
        self._output(f"Added {len(batch)} item{plural}: " + ", ".join(i.label() for i in batch))

    def _on_nothing_recognized(self) -> None:
        self._output(
            "No items recognized. Try speaking more clearly or use words like 'and' between items."
        )

    def _on_items_completed(self, batch: list[ShoppingItem]) -> None:
        self._output("Checked off: " + ", ".join(item.name for item in batch))

    def _on_all_complete(self) -> None:
        self._output("Shopping complete! Every item on the list is checked off.")

    def _on_error(self, kind: str, message: str) -> None:
        self._output(f"Voice recognition error: {message or message_for(kind)}")

    def _on_mode_change(self, previous: Mode, current: Mode) -> None:
        labels = {Mode.ADDING: "Listening for items...", Mode.SHOPPING: "Shopping mode on."}
        self._output(labels.get(current, "Stopped listening."))

    def _on_interim(self, text: str) -> None:
        self._output(f"  ... {text}")

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def handle_command(self, line: str) -> bool:
        parts = line.strip().split(maxsplit=1)
        if not parts:
            return True
        command = parts[0].lower()
        arg = parts[1] if len(parts) > 1 else ""

        if command in ("quit", "exit"):
            self.shopper.stop()
            return False
        if command == "add":
            if not self.shopper.start_adding():
                self._output("Speech recognition is not supported on this system.")
        elif command == "shop":
            if self.shopper.shopping_list.is_empty():
                self._output("Add some items to your list first!")
            elif not self.shopper.start_shopping():
                self._output("Speech recognition is not supported on this system.")
        elif command == "stop":
            self.shopper.stop()
        elif command == "list":
            self._print_list()
        elif command in ("toggle", "remove", "load"):
            self._indexed_command(command, arg)
        elif command == "clear":
            self.shopper.clear_list()
            self._output("List cleared.")
        elif command == "save":
            if self.shopper.save_to_history():
                self._output("List saved to history.")
            else:
                self._output("Nothing to save.")
        elif command == "history":
            self._print_history()
        elif command == "key" and arg:
            self.config_store.set_api_key(arg)
            self._output("API key saved. Restart to apply.")
        else:
            self._output(HELP)
        return True

    def _indexed_command(self, command: str, arg: str) -> None:
        try:
            index = int(arg) - 1
        except ValueError:
            self._output(f"Usage: {command} N")
            return
        if command == "load":
            if self.shopper.load_from_history(index):
                self._output("List loaded from history.")
            else:
                self._output("No saved list with that number.")
            return
        items = self.shopper.items
        if not 0 <= index < len(items):
            self._output("No item with that number.")
            return
        if command == "toggle":
            self.shopper.toggle_item(items[index].id)
        else:
            self.shopper.remove_item(items[index].id)
        self._print_list()

    def _print_list(self) -> None:
        items = self.shopper.items
        if not items:
            self._output("No items in your shopping list yet.")
            return
        numbers = {item.id: n for n, item in enumerate(items, start=1)}
        groups = self.shopper.shopping_list.by_category(self.shopper.catalog)
        for category, grouped in groups.items():
            self._output(f"{category}:")
            for item in grouped:
                mark = "x" if item.completed else " "
                self._output(f"  {numbers[item.id]:>2}. [{mark}] {item.label()}")

    def _print_history(self) -> None:
        history = self.shopper.history
        if not len(history):
            self._output("No saved lists.")
            return
        for n in range(len(history)):
            snapshot = history.get(n) or []
            self._output(f"{n + 1}. " + ", ".join(item.name for item in snapshot))

    def run(self, stdin: TextIO = sys.stdin) -> int:
        self._output(HELP)
        for line in stdin:
            if not self.handle_command(line):
                break
        self.shopper.stop()
        return 0


def main() -> int:
    store = JsonConfigStore()
    logging.basicConfig(
        level=getattr(logging, store.get_settings().log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = ConsoleApp(config_store=store)
    return app.run()


if __name__ == "__main__":
    raise SystemExit(main())
