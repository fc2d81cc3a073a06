import customtkinter as ctk


class ConfirmDialog(ctk.CTkToplevel):
    """Modal yes/no prompt. Blocks until closed; read ``.result`` afterwards."""

    def __init__(self, master, title: str, message: str,
                 confirm_text: str = "確認刪除", cancel_text: str = "取消",
                 danger: bool = True, **kwargs):
        super().__init__(master, **kwargs)
        self.title(title)
        self.result = False
        self.resizable(False, False)
        self.grid_columnconfigure(0, weight=1)

        ctk.CTkLabel(
            self, text=message, wraplength=360, justify="left", padx=20, pady=16
        ).grid(row=0, column=0, sticky="ew")

        btn_frame = ctk.CTkFrame(self, fg_color="transparent")
        btn_frame.grid(row=1, column=0, pady=(0, 16), padx=20, sticky="e")

        ctk.CTkButton(
            btn_frame, text=cancel_text, width=90,
            fg_color="transparent", border_width=1,
            text_color=("gray10", "gray90"),
            command=self._close,
        ).pack(side="left", padx=(0, 8))

        colors = {"fg_color": "#F43F5E", "hover_color": "#E11D48"} if danger else {}
        ctk.CTkButton(
            btn_frame, text=confirm_text, width=90,
            command=self._on_confirm, **colors,
        ).pack(side="left")

        self.protocol("WM_DELETE_WINDOW", self._close)
        self.transient(master)
        self.grab_set()
        center_on_parent(self)
        self.wait_window()

    def _on_confirm(self):
        self.result = True
        self.destroy()

    def _close(self):
        self.destroy()


def center_on_parent(window):
    """Place a toplevel over the middle of its master."""
    window.update_idletasks()
    mw = window.master.winfo_x() + window.master.winfo_width() // 2
    mh = window.master.winfo_y() + window.master.winfo_height() // 2
    w, h = window.winfo_width(), window.winfo_height()
    window.geometry(f"+{mw - w // 2}+{mh - h // 2}")


def show_message(master, title: str, message: str):
    """Single-button notice (write failures, export results)."""
    dlg = ctk.CTkToplevel(master)
    dlg.title(title)
    dlg.resizable(False, False)
    ctk.CTkLabel(dlg, text=message, wraplength=360, justify="left", padx=20, pady=16).pack()
    ctk.CTkButton(dlg, text="確定", width=90, command=dlg.destroy).pack(pady=(0, 16))
    dlg.transient(master)
    dlg.grab_set()
    center_on_parent(dlg)
    dlg.wait_window()
