# =============================================================================
# Terminal Selector (prompt_toolkit)
# =============================================================================
# Arrow-key single-choice list rendered inline below the current output.
# Separators are drawn but skipped by navigation.

from dataclasses import dataclass, field
from typing import Protocol

from prompt_toolkit.application import Application
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.layout import Layout
from prompt_toolkit.layout.containers import Window
from prompt_toolkit.layout.controls import FormattedTextControl

from scriptrunner.menu import Choice, Marker, MenuItem, Separator
from scriptrunner.ui import STYLE


@dataclass
class SelectConfig:
    message: str
    choices: list[MenuItem] = field(default_factory=list)
    loop: bool = True

    def selectable_indexes(self) -> list[int]:
        return [i for i, item in enumerate(self.choices) if isinstance(item, Choice)]


class Prompter(Protocol):
    def select(self, config: SelectConfig) -> object:
        """Show the menu and return the chosen Choice.value."""


def render_choice(choice: Choice, selected: bool) -> list[tuple[str, str]]:
    """Formatted-text fragments for one menu line (without newline)."""
    fragments: list[tuple[str, str]] = []
    if choice.marker is Marker.FAVORITE:
        fragments.append(("class:marker.favorite", f"{choice.marker.value} "))
    elif choice.marker is Marker.RECENT:
        fragments.append(("class:muted", f"{choice.marker.value} "))
    elif choice.marker is Marker.BACKGROUND:
        fragments.append(("class:secondary", f"{choice.marker.value} "))

    title_style = choice.style + (" reverse" if selected else "")
    if choice.hint:
        fragments.append((title_style + " bold", choice.title.ljust(14)))
        fragments.append(("class:muted", f" → {choice.hint}"))
    else:
        fragments.append((title_style, choice.title))

    if choice.description:
        fragments.append(("class:description", f"  # {choice.description}"))
    return fragments


class TerminalPrompter:
    """Prompter backed by a small inline prompt_toolkit application."""

    def select(self, config: SelectConfig) -> object:
        selectable = config.selectable_indexes()
        if not selectable:
            raise ValueError(f"Menu has no selectable choices: {config.message!r}")

        state = {"cursor": 0}

        def move(step: int) -> None:
            cursor = state["cursor"] + step
            if config.loop:
                cursor %= len(selectable)
            else:
                cursor = max(0, min(cursor, len(selectable) - 1))
            state["cursor"] = cursor

        def get_text():
            current = selectable[state["cursor"]]
            fragments = [("class:question", "? "), ("class:message", config.message), ("", "\n")]
            for index, item in enumerate(config.choices):
                if isinstance(item, Separator):
                    fragments.append(("class:separator", f"  {item.label}\n"))
                    continue
                selected = index == current
                fragments.append(("class:pointer", "❯ " if selected else "  "))
                fragments.extend(render_choice(item, selected))
                fragments.append(("", "\n"))
            return fragments

        bindings = KeyBindings()

        @bindings.add("up")
        @bindings.add("k")
        def _up(event):
            move(-1)

        @bindings.add("down")
        @bindings.add("j")
        def _down(event):
            move(1)

        @bindings.add("enter")
        def _accept(event):
            event.app.exit(result=config.choices[selectable[state["cursor"]]].value)

        @bindings.add("c-c")
        def _abort(event):
            event.app.exit(exception=KeyboardInterrupt, style="class:aborting")

        app = Application(
            layout=Layout(Window(
                FormattedTextControl(get_text, focusable=True, show_cursor=False),
                always_hide_cursor=True,
            )),
            key_bindings=bindings,
            style=STYLE,
            full_screen=False,
        )
        return app.run()
