import customtkinter as ctk

from services.auth_service import AuthService
from ui.components.confirm_dialog import center_on_parent
from utils.constants import APP_NAME, OPERATORS


class LoginDialog(ctk.CTkToplevel):
    """Operator picker + shared password. ``.saved`` is True once authorized."""

    def __init__(self, master, auth: AuthService, **kwargs):
        super().__init__(master, **kwargs)
        self._auth = auth
        self.saved = False

        self.title(APP_NAME)
        self.resizable(False, False)
        self.grid_columnconfigure(0, weight=1)

        ctk.CTkLabel(
            self, text=APP_NAME, font=ctk.CTkFont(size=20, weight="bold"),
        ).grid(row=0, column=0, padx=24, pady=(20, 4))
        ctk.CTkLabel(self, text="選擇操作人員", text_color="gray60").grid(
            row=1, column=0, padx=24, pady=(8, 4)
        )

        self._user_var = ctk.StringVar(value=OPERATORS[0])
        grid = ctk.CTkFrame(self, fg_color="transparent")
        grid.grid(row=2, column=0, padx=24, pady=4)
        for i, name in enumerate(OPERATORS):
            ctk.CTkRadioButton(grid, text=name, variable=self._user_var, value=name).grid(
                row=i // 4, column=i % 4, padx=6, pady=4, sticky="w"
            )

        self._pw_var = ctk.StringVar()
        pw_entry = ctk.CTkEntry(
            self, textvariable=self._pw_var, show="•", width=260, placeholder_text="系統密碼",
        )
        pw_entry.grid(row=3, column=0, padx=24, pady=(12, 4))
        pw_entry.bind("<Return>", lambda _e: self._on_login())

        self._error_var = ctk.StringVar()
        ctk.CTkLabel(self, textvariable=self._error_var, text_color="#F44336", wraplength=300).grid(
            row=4, column=0, padx=24
        )

        ctk.CTkButton(self, text="登入系統", width=260, command=self._on_login).grid(
            row=5, column=0, padx=24, pady=(4, 20)
        )

        self.transient(master)
        self.grab_set()
        center_on_parent(self)
        pw_entry.focus_set()

    def _on_login(self):
        result = self._auth.login(self._pw_var.get(), self._user_var.get())
        if not result.authorized:
            self._error_var.set(result.message or "密碼錯誤")
            self._pw_var.set("")
            return
        self.saved = True
        self.destroy()
