import os
import subprocess
import sys

import customtkinter as ctk

from logger import get_logger
from session import BrowserSession
from settings import configure, save_setting
from wallhaven_api import CATEGORY_PRESETS, PURITY_PRESETS, AspectRatio

ctk.set_appearance_mode("Dark")
ctk.set_default_color_theme("blue")

log = get_logger("app")

GRID_COLUMNS = 4
THUMB_SIZE = (150, 100)
# Thumbnails fetched per render pass; each fetch blocks the window
THUMBS_PER_PASS = 4
RENDER_INTERVAL_MS = 300


def make_ctk_handle(img):
    """Wrap a decoded RGBA thumbnail into something a CTk widget can show."""
    w, h = img.size
    scale = min(THUMB_SIZE[0] / w, THUMB_SIZE[1] / h)
    size = (max(1, int(w * scale)), max(1, int(h * scale)))
    return ctk.CTkImage(light_image=img, dark_image=img, size=size)


class ThumbnailCell(ctk.CTkButton):
    def __init__(self, master, result, on_click, **kwargs):
        super().__init__(master, text="", width=THUMB_SIZE[0], height=THUMB_SIZE[1],
                         fg_color="gray20", hover_color="gray30",
                         command=lambda: on_click(self), **kwargs)
        self.result = result
        self.attempts = 0
        self.is_loaded = False

    def show(self, handle):
        self.configure(image=handle)
        self.is_loaded = True


class App(ctk.CTk):
    def __init__(self, settings):
        super().__init__()
        self.title("Wallhaven Browser")
        self.geometry("780x760")
        self.settings = settings
        self.session = BrowserSession(settings, make_handle=make_ctk_handle)
        self.cells = []
        self.rendered_generation = None

        self._setup_ui()
        self.after(RENDER_INTERVAL_MS, self.render_pass)

    def _setup_ui(self):
        self.grid_columnconfigure(1, weight=1)
        self.grid_rowconfigure(0, weight=1)

        self.sidebar = ctk.CTkFrame(self, width=220, corner_radius=0)
        self.sidebar.grid(row=0, column=0, rowspan=2, sticky="nsew")

        self.logo_label = ctk.CTkLabel(self.sidebar, text="Wallhaven\nBrowser", font=ctk.CTkFont(size=20, weight="bold"))
        self.logo_label.grid(row=0, column=0, padx=20, pady=(20, 10))

        self.query_entry = ctk.CTkEntry(self.sidebar, placeholder_text="Search")
        self.query_entry.grid(row=1, column=0, padx=20, pady=10, sticky="ew")
        self.query_entry.bind("<Return>", lambda e: (self.start_search(), "break")[1])

        self.search_btn = ctk.CTkButton(self.sidebar, text="Search", command=self.start_search)
        self.search_btn.grid(row=2, column=0, padx=20, pady=10)

        current = self.session.filter

        ctk.CTkLabel(self.sidebar, text="Categories:").grid(row=3, column=0, padx=20, sticky="w")
        self.categories_btn = ctk.CTkSegmentedButton(
            self.sidebar, values=list(CATEGORY_PRESETS), command=self.on_categories)
        self.categories_btn.set(self._label_for(CATEGORY_PRESETS, current.categories))
        self.categories_btn.grid(row=4, column=0, padx=10, pady=(0, 10))

        ctk.CTkLabel(self.sidebar, text="Purity:").grid(row=5, column=0, padx=20, sticky="w")
        self.purity_btn = ctk.CTkSegmentedButton(
            self.sidebar, values=list(PURITY_PRESETS), command=self.on_purity)
        self.purity_btn.set(self._label_for(PURITY_PRESETS, current.purity))
        self.purity_btn.grid(row=6, column=0, padx=10, pady=(0, 10))

        ctk.CTkLabel(self.sidebar, text="Aspect ratio:").grid(row=7, column=0, padx=20, sticky="w")
        self.ratio_btn = ctk.CTkSegmentedButton(
            self.sidebar, values=[r.label for r in (AspectRatio.WIDE_16_9, AspectRatio.ULTRAWIDE_21_9, AspectRatio.ANY)],
            command=self.on_ratio)
        self.ratio_btn.set(current.ratio.label)
        self.ratio_btn.grid(row=8, column=0, padx=10, pady=(0, 10))

        ctk.CTkLabel(self.sidebar, text="Max pages:").grid(row=9, column=0, padx=20, sticky="w")
        self.pages_entry = ctk.CTkEntry(self.sidebar, width=60, justify="center")
        self.pages_entry.insert(0, str(current.max_pages))
        self.pages_entry.grid(row=10, column=0, padx=20, pady=(0, 10), sticky="w")
        self.pages_entry.bind("<Return>", self.on_max_pages)
        self.pages_entry.bind("<FocusOut>", self.on_max_pages)

        self.sidebar.grid_rowconfigure(11, weight=1)

        self.open_folder_btn = ctk.CTkButton(self.sidebar, text="Open Folder", command=self.open_download_folder, fg_color="gray")
        self.open_folder_btn.grid(row=12, column=0, padx=20, pady=10)

        path = self.session.download_dir
        display_path = path if len(path) < 24 else f"...{path[-24:]}"
        self.path_label = ctk.CTkLabel(self.sidebar, text=f"Path: {display_path}", font=ctk.CTkFont(size=10))
        self.path_label.grid(row=13, column=0, padx=5, pady=5)

        self.scrollable_frame = ctk.CTkScrollableFrame(self, label_text="Results")
        self.scrollable_frame.grid(row=0, column=1, sticky="nsew", padx=10, pady=(10, 5))

        self.status_label = ctk.CTkLabel(self, text="", anchor="w")
        self.status_label.grid(row=1, column=1, sticky="ew", padx=10, pady=(0, 10))

    @staticmethod
    def _label_for(presets, bits):
        for label, value in presets.items():
            if value == bits:
                return label
        return ""

    # Filter changes

    def on_categories(self, label):
        self.session.set_categories(CATEGORY_PRESETS[label])

    def on_purity(self, label):
        self.session.set_purity(PURITY_PRESETS[label])

    def on_ratio(self, label):
        self.session.set_ratio(AspectRatio.from_label(label))

    def on_max_pages(self, event=None):
        pages = self.session.set_max_pages(self.pages_entry.get())
        self.pages_entry.delete(0, "end")
        self.pages_entry.insert(0, str(pages))
        if pages != self.settings.max_pages:
            self.settings.max_pages = pages
            save_setting("MAX_PAGES", pages)

    # Actions

    def start_search(self):
        self.on_max_pages()
        self.session.set_query(self.query_entry.get().strip())
        self.search_btn.configure(text="Searching...", state="disabled")
        self.update_idletasks()

        outcome = self.session.search()

        self.search_btn.configure(text="Search", state="normal")
        self.set_status(self.session.status)
        self._display_results(self.session.results)
        label = "Results" if outcome.failed else f"Results ({len(outcome.results):,})"
        self.scrollable_frame.configure(label_text=label)

    def on_cell_click(self, cell):
        if not cell.is_loaded:
            return
        self.set_status("Downloading...")
        self.update_idletasks()
        self.set_status(self.session.download(cell.result.full_image_url))

    def set_status(self, text):
        self.status_label.configure(text=text)

    def open_download_folder(self):
        path = self.session.download_dir
        if not os.path.isdir(path):
            return
        if sys.platform.startswith("win"):
            os.startfile(path)
        elif sys.platform == "darwin":
            subprocess.Popen(["open", path])
        else:
            subprocess.Popen(["xdg-open", path])

    # Grid rendering

    def _clear_results(self):
        for widget in self.scrollable_frame.winfo_children():
            widget.destroy()
        self.cells = []

    def _display_results(self, results):
        self._clear_results()
        self.rendered_generation = self.session.generation
        for i, result in enumerate(results):
            cell = ThumbnailCell(self.scrollable_frame, result, self.on_cell_click)
            cell.grid(row=i // GRID_COLUMNS, column=i % GRID_COLUMNS, padx=5, pady=5)
            self.cells.append(cell)
        try:
            self.scrollable_frame._parent_canvas.yview_moveto(0)
        except AttributeError:
            pass

    def _visible_cells(self):
        view_top = self.scrollable_frame.winfo_rooty()
        view_height = self.scrollable_frame.winfo_height()
        if view_height <= 10:
            return []
        view_bottom = view_top + view_height

        visible = []
        for cell in self.cells:
            if cell.is_loaded:
                continue
            top = cell.winfo_rooty()
            bottom = top + cell.winfo_height()
            # Small buffer so the next row is ready when scrolled into view
            if bottom >= view_top - 100 and top <= view_bottom + 100:
                visible.append(cell)
        return visible

    def render_pass(self):
        try:
            if self.rendered_generation == self.session.generation:
                self._render_pending()
        finally:
            self.after(RENDER_INTERVAL_MS, self.render_pass)

    def _render_pending(self):
        # Cells that failed before go last so one bad URL cannot starve the rest
        pending = sorted(self._visible_cells(), key=lambda c: c.attempts)
        for cell in pending[:THUMBS_PER_PASS]:
            handle = self.session.thumbnail(cell.result.thumbnail_url)
            if handle is None:
                cell.attempts += 1
            else:
                cell.show(handle)


def main():
    settings = configure()
    log.info("Download directory: %s", settings.download_path)
    app = App(settings)
    app.mainloop()


if __name__ == "__main__":
    main()
