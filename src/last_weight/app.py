"""App Kivy: resultado principal, historial y configuracion persistida en SQLite."""

from __future__ import annotations

import asyncio
import traceback
from dataclasses import replace
from datetime import date, datetime
from pathlib import Path

import pandas as pd

from last_weight.cli import DEFAULT_DB, build_source
from last_weight.clock import system_clock
from last_weight.display import insight_lines
from last_weight.excel_writer import ExcelLayout, write_history_xlsx
from last_weight.photos import PhotoLibrary
from last_weight.session import WeightSession
from last_weight.storage import AppSettings, SQLiteStore

SCANNING_TEXT = "Scanning your time-warped body data..."
HISTORY_ROWS = 500


def run_app() -> int:
    """Lanza la app Kivy."""
    from kivy.app import App
    from kivy.core.window import Window
    from kivy.uix.boxlayout import BoxLayout
    from kivy.uix.button import Button
    from kivy.uix.filechooser import FileChooserListView
    from kivy.uix.image import Image
    from kivy.uix.label import Label
    from kivy.uix.popup import Popup
    from kivy.uix.textinput import TextInput

    class LastWeightApp(App):
        """Main Kivy app."""

        def __init__(self, **kwargs: object) -> None:
            super().__init__(**kwargs)
            self.store = SQLiteStore(DEFAULT_DB)
            self.settings = self.store.load_settings()
            self.session: WeightSession | None = None
            self.result: Label | None = None
            self.status: Label | None = None
            self.photo: Image | None = None
            self.unit_btn: Button | None = None
            self._refresh_task: asyncio.Task[None] | None = None

        def build(self) -> BoxLayout:
            Window.bind(on_key_down=self._on_key_down)

            root = BoxLayout(orientation="vertical", spacing=8, padding=10)
            self.result = Label(text=SCANNING_TEXT, halign="center", valign="middle")
            self.result.bind(size=self.result.setter("text_size"))
            root.add_widget(self.result)

            self.photo = Image(size_hint_y=0.6, opacity=0)
            root.add_widget(self.photo)

            actions = BoxLayout(
                orientation="horizontal",
                spacing=8,
                size_hint_y=None,
                height=40,
            )
            refresh_btn = Button(text="Refresh")
            mode_btn = Button(text="Days / Age")
            self.unit_btn = Button(text=self.settings.weight_unit.value)
            history_btn = Button(text="History")
            export_btn = Button(text="Export")
            settings_btn = Button(text="Settings")
            exit_btn = Button(text="Exit")
            refresh_btn.bind(on_press=self._on_refresh)
            mode_btn.bind(on_press=self._on_toggle_mode)
            self.unit_btn.bind(on_press=self._on_toggle_unit)
            history_btn.bind(on_press=self._open_history_popup)
            export_btn.bind(on_press=self._on_export)
            settings_btn.bind(on_press=self._open_settings_popup)
            exit_btn.bind(on_press=lambda *_args: self.stop())
            for btn in (
                refresh_btn,
                mode_btn,
                self.unit_btn,
                history_btn,
                export_btn,
                settings_btn,
                exit_btn,
            ):
                actions.add_widget(btn)
            root.add_widget(actions)

            self.status = Label(text="", size_hint_y=None, height=30)
            root.add_widget(self.status)

            self._on_refresh(None)
            return root

        def _on_key_down(
            self,
            _window: object,
            keycode: int,
            _scancode: int,
            _text: str,
            _modifiers: list[str],
        ) -> bool:
            # Esc: salir de fullscreen o cerrar app.
            if keycode != 27:
                return False
            if Window.fullscreen:
                Window.fullscreen = False
            else:
                self.stop()
            return True

        def _on_refresh(self, _: object) -> None:
            if not self.settings.source_path:
                self._set_status("Configura la fuente de datos en Settings.")
                return
            if self._refresh_task is not None and not self._refresh_task.done():
                return
            source = build_source(Path(self.settings.source_path).expanduser())
            self.session = WeightSession(
                source, self.settings, clock=system_clock, cache=self.store
            )
            self._set_status(SCANNING_TEXT)
            self._refresh_task = asyncio.ensure_future(self._refresh(self.session))

        async def _refresh(self, session: WeightSession) -> None:
            try:
                outcome = await session.refresh_async()
            except Exception as exc:
                self._show_error("actualizar", exc)
                return
            if outcome.error is not None:
                self._set_status(f"Health data not available: {outcome.error}")
            else:
                self._set_status(f"{len(outcome.snapshot)} weight samples loaded.")
            self._render()

        def _on_toggle_mode(self, _: object) -> None:
            if self.session is not None:
                self._save_settings(self.session.toggle_display_mode())
            else:
                mode = self.settings.display_mode.toggled()
                self._save_settings(replace(self.settings, display_mode=mode))

        def _on_toggle_unit(self, _: object) -> None:
            if self.session is not None:
                self._save_settings(self.session.toggle_unit())
            else:
                unit = self.settings.weight_unit.toggled()
                self._save_settings(replace(self.settings, weight_unit=unit))
            if self.unit_btn is not None:
                self.unit_btn.text = self.settings.weight_unit.value

        def _on_export(self, _: object) -> None:
            snapshot = self.session.snapshot if self.session is not None else None
            if snapshot is None or not len(snapshot):
                self._set_status("No hay datos para exportar.")
                return
            out_path = export_path(self.settings, system_clock())
            try:
                write_history_xlsx(
                    snapshot, out_path, ExcelLayout(), self.settings.weight_unit
                )
            except Exception as exc:
                self._show_error("exportar", exc)
                return
            self._set_status(f"Excel generado: {out_path}")

        def _apply_settings(self, settings: AppSettings) -> None:
            if self.session is not None:
                self.session.update_settings(settings)
            self._save_settings(settings)

        def _save_settings(self, settings: AppSettings) -> None:
            self.settings = settings
            self.store.save_settings(settings)
            self._render()

        def _render(self) -> None:
            if self.result is None:
                return
            insight = self.session.insight if self.session is not None else None
            lines = insight_lines(
                insight,
                unit=self.settings.weight_unit,
                mode=self.settings.display_mode,
                now=system_clock(),
                date_of_birth=self.settings.date_of_birth,
            )
            self.result.text = "\n\n".join(lines)
            self._render_photo()

        def _render_photo(self) -> None:
            if self.photo is None:
                return
            insight = self.session.insight if self.session is not None else None
            path = None
            if insight is not None and self.settings.photos_dir:
                library = PhotoLibrary(Path(self.settings.photos_dir).expanduser())
                path = library.find_nearest_image(insight.match.timestamp)
            if path is None:
                self.photo.opacity = 0
                return
            self.photo.source = str(path)
            self.photo.opacity = 1

        def _open_history_popup(self, _: object) -> None:
            df = self.session.history() if self.session is not None else None
            text = history_text(df) if df is not None else ""
            preview = TextInput(
                readonly=True,
                text=text or "No weight data.",
                multiline=True,
                do_wrap=False,
            )
            close_btn = Button(text="Close", size_hint_y=None, height=40)
            content = BoxLayout(orientation="vertical")
            content.add_widget(preview)
            content.add_widget(close_btn)
            popup = Popup(
                title="Weight History",
                content=content,
                size_hint=(0.92, 0.92),
            )
            close_btn.bind(on_press=lambda *_args: popup.dismiss())
            popup.open()

        def _open_settings_popup(self, _: object) -> None:
            inputs: dict[str, TextInput] = {}

            def make_row(label: str, key: str, initial: str, browse: bool) -> BoxLayout:
                row = BoxLayout(orientation="horizontal", size_hint_y=None, height=36)
                row.add_widget(Label(text=label, size_hint_x=0.3))
                inp = TextInput(text=initial, multiline=False)
                row.add_widget(inp)
                if browse:
                    browse_btn = Button(text="Browse", size_hint_x=0.2)
                    browse_btn.bind(
                        on_press=lambda *_args: self._open_path_chooser(inp)
                    )
                    row.add_widget(browse_btn)
                inputs[key] = inp
                return row

            form = settings_form_values(self.settings)
            box = BoxLayout(orientation="vertical", spacing=8, padding=8)
            rows = [
                ("Health data", "source_path", True),
                ("Photos folder", "photos_dir", True),
                ("Export folder", "export_dir", True),
                ("Date of birth", "date_of_birth", False),
                ("Ignore last N days", "cutoff_days", False),
            ]
            for label, key, browse in rows:
                box.add_widget(make_row(label, key, form[key], browse))

            footer = BoxLayout(orientation="horizontal", size_hint_y=None, height=42)
            cancel_btn = Button(text="Cancel")
            save_btn = Button(text="Save")
            footer.add_widget(cancel_btn)
            footer.add_widget(save_btn)

            content = BoxLayout(orientation="vertical")
            content.add_widget(box)
            content.add_widget(footer)
            popup = Popup(title="Settings", content=content, size_hint=(0.92, 0.7))
            cancel_btn.bind(on_press=lambda *_args: popup.dismiss())

            def save(*_: object) -> None:
                values = {key: inp.text for key, inp in inputs.items()}
                try:
                    settings = parse_settings_form(values, self.settings)
                except ValueError as exc:
                    self._set_status(f"Configuracion invalida: {exc}")
                    return
                popup.dismiss()
                source_changed = settings.source_path != self.settings.source_path
                self._apply_settings(settings)
                self._set_status("Configuracion guardada.")
                if source_changed:
                    self._on_refresh(None)

            save_btn.bind(on_press=save)
            popup.open()

        def _open_path_chooser(self, target_input: TextInput) -> None:
            start_dir = (
                str(Path(target_input.text).expanduser().parent)
                if target_input.text.strip()
                else str(Path.home())
            )
            chooser = FileChooserListView(path=start_dir, dirselect=True)
            buttons = BoxLayout(orientation="horizontal", size_hint_y=None, height=40)
            cancel_btn = Button(text="Cancel")
            use_btn = Button(text="Use")
            buttons.add_widget(cancel_btn)
            buttons.add_widget(use_btn)

            content = BoxLayout(orientation="vertical")
            content.add_widget(chooser)
            content.add_widget(buttons)
            popup = Popup(title="Select", content=content, size_hint=(0.9, 0.9))
            cancel_btn.bind(on_press=lambda *_args: popup.dismiss())

            def apply_selection(*_: object) -> None:
                selected = chooser.selection[0] if chooser.selection else chooser.path
                target_input.text = selected
                popup.dismiss()

            use_btn.bind(on_press=apply_selection)
            chooser.bind(on_submit=lambda *_args: apply_selection())
            popup.open()

        def _set_status(self, text: str) -> None:
            if self.status is not None:
                self.status.text = text

        def _show_error(self, action: str, exc: Exception) -> None:
            error_type = type(exc).__name__
            self._set_status(f"Error al {action} ({error_type}): {exc}")
            if self.result is not None:
                self.result.text = traceback.format_exc()

    asyncio.run(LastWeightApp().async_run(async_lib="asyncio"))
    return 0


def export_path(settings: AppSettings, now: datetime) -> Path:
    """Excel path inside the export folder (``./salidas`` when unset)."""
    out_dir = (
        Path(settings.export_dir).expanduser()
        if settings.export_dir
        else Path.cwd() / "salidas"
    )
    ts = now.strftime("%Y-%m-%d_%H-%M-%S")
    return out_dir / f"last_weight_{ts}.xlsx"


def history_text(df: pd.DataFrame) -> str:
    """Render the history frame as ``Mar 28, 2025: 72.3 kg`` lines."""
    if df.empty:
        return ""
    lines = []
    for _, row in df.head(HISTORY_ROWS).iterrows():
        day: date = row["date"]
        weight = f"{row['weight']:.1f} {row['unit']}"
        lines.append(f"{day:%b} {day.day}, {day.year}: {weight}")
    return "\n".join(lines)


def settings_form_values(settings: AppSettings) -> dict[str, str]:
    """Settings as the strings shown in the form."""
    return {
        "source_path": settings.source_path,
        "photos_dir": settings.photos_dir,
        "export_dir": settings.export_dir,
        "date_of_birth": (
            settings.date_of_birth.isoformat() if settings.date_of_birth else ""
        ),
        "cutoff_days": str(settings.cutoff_days),
    }


def parse_settings_form(values: dict[str, str], base: AppSettings) -> AppSettings:
    """Build settings from form strings.

    Raises:
        ValueError: If the date of birth or the cutoff is malformed.
    """
    dob_text = values.get("date_of_birth", "").strip()
    date_of_birth = date.fromisoformat(dob_text) if dob_text else None
    cutoff_text = values.get("cutoff_days", "").strip()
    cutoff_days = int(cutoff_text) if cutoff_text else base.cutoff_days
    if cutoff_days < 0:
        raise ValueError(f"cutoff_days must be >= 0, got {cutoff_days}")
    return replace(
        base,
        source_path=values.get("source_path", "").strip(),
        photos_dir=values.get("photos_dir", "").strip(),
        export_dir=values.get("export_dir", "").strip(),
        date_of_birth=date_of_birth,
        cutoff_days=cutoff_days,
    )
