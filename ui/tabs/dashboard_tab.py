import tkinter as tk

import customtkinter as ctk
from matplotlib.backends.backend_tkagg import FigureCanvasTkAgg
from matplotlib.figure import Figure

from models.transaction import TransactionType
from services.report_service import DASHBOARD_ALL, DashboardData, ReportService
from utils.constants import CHART_COLORS
from utils.currency import format_currency, format_percent
from utils.date_helpers import today

_MONTH_ALL = "全年"
_TYPE_LABELS = {
    "全部": DASHBOARD_ALL,
    TransactionType.INBOUND.value: TransactionType.INBOUND.value,
    TransactionType.REPAIR.value: TransactionType.REPAIR.value,
}


class DashboardTab(ctk.CTkFrame):
    """結算總覽: settlement cards, annual trend, machine category share and
    the repair leaderboard for the selected period."""

    def __init__(self, master, report_service: ReportService, get_transactions, **kwargs):
        super().__init__(master, fg_color="transparent", **kwargs)
        self._report_svc = report_service
        self._get_transactions = get_transactions

        now = today()
        self._year_var = ctk.StringVar(value=str(now.year))
        self._month_var = ctk.StringVar(value=f"{now.month:02d}")
        self._type_var = ctk.StringVar(value="全部")

        # Fonts able to render the Chinese labels, first available wins
        self._font_family = ["Microsoft JhengHei", "PingFang TC", "Noto Sans CJK TC", "sans-serif"]

        self.grid_columnconfigure(0, weight=1)
        self.grid_rowconfigure(2, weight=1)

        self._build_toolbar()
        self._build_cards()
        self._build_charts()
        self.refresh()

    def refresh(self):
        self._load()

    def _build_toolbar(self):
        bar = ctk.CTkFrame(self, fg_color=("gray88", "gray18"), corner_radius=8)
        bar.grid(row=0, column=0, sticky="ew", padx=8, pady=(8, 0))

        self._title_label = ctk.CTkLabel(bar, text="", font=ctk.CTkFont(size=15, weight="bold"))
        self._title_label.pack(side="left", padx=12, pady=8)

        ctk.CTkSegmentedButton(
            bar, values=list(_TYPE_LABELS), variable=self._type_var,
            command=lambda _: self._load(),
        ).pack(side="right", padx=(4, 12))
        ctk.CTkComboBox(
            bar, values=[_MONTH_ALL] + [f"{m:02d}" for m in range(1, 13)],
            variable=self._month_var, width=80, state="readonly",
            command=lambda _: self._load(),
        ).pack(side="right", padx=4)
        self._year_combo = ctk.CTkComboBox(
            bar, values=[self._year_var.get()], variable=self._year_var, width=90,
            state="readonly", command=lambda _: self._load(),
        )
        self._year_combo.pack(side="right", padx=4)

    def _build_cards(self):
        self._card_frame = ctk.CTkFrame(self, fg_color="transparent")
        self._card_frame.grid(row=1, column=0, sticky="ew", padx=16, pady=10)
        self._card_frame.grid_columnconfigure((0, 1, 2), weight=1)

    def _chart_box(self, parent, title, row, col, figsize, **grid):
        outer = ctk.CTkFrame(parent, fg_color=("gray90", "gray20"), corner_radius=8)
        outer.grid(row=row, column=col, sticky="nsew", **grid)
        ctk.CTkLabel(outer, text=title, font=ctk.CTkFont(size=13, weight="bold")).pack(pady=(10, 0))
        fig = Figure(figsize=figsize, dpi=80, tight_layout=True)
        ax = fig.add_subplot(111)
        canvas = FigureCanvasTkAgg(fig, master=outer)
        canvas.get_tk_widget().pack(fill="both", expand=True, padx=8, pady=(4, 10))
        return outer, fig, ax, canvas

    def _build_charts(self):
        charts = ctk.CTkFrame(self, fg_color="transparent")
        charts.grid(row=2, column=0, sticky="nsew", padx=16, pady=(0, 12))
        charts.grid_columnconfigure(0, weight=3)
        charts.grid_columnconfigure(1, weight=2)
        charts.grid_rowconfigure((0, 1), weight=1)

        _, self._trend_fig, self._trend_ax, self._trend_mpl = self._chart_box(
            charts, "年度支出趨勢", 0, 0, (6, 2.6), padx=(0, 8), pady=(0, 8)
        )
        pie_outer, self._pie_fig, self._pie_ax, self._pie_mpl = self._chart_box(
            charts, "機台種類佔比", 0, 1, (3, 2.6), pady=(0, 8)
        )
        self._legend_frame = ctk.CTkFrame(pie_outer, fg_color="transparent")
        self._legend_frame.pack(fill="x", padx=8, pady=(0, 8))

        self._ranking_frame = ctk.CTkScrollableFrame(
            charts, label_text="🛠️ 維修排行榜 (Top 10)", height=200
        )
        self._ranking_frame.grid(row=1, column=0, columnspan=2, sticky="nsew")
        self._ranking_frame.grid_columnconfigure(1, weight=1)

    def _style_ax(self, ax, fig):
        is_dark = ctk.get_appearance_mode() == "Dark"
        bg = "#2b2b2b" if is_dark else "#e4e4e4"
        fg = "#aaaaaa" if is_dark else "#444444"
        fig.patch.set_facecolor(bg)
        ax.set_facecolor(bg)
        ax.tick_params(colors=fg, labelsize=8)
        for spine in ax.spines.values():
            spine.set_edgecolor(fg)

    # ── Data ─────────────────────────────────────────────────────────────────
    def _load(self):
        month = self._month_var.get()
        data = self._report_svc.dashboard(
            self._get_transactions(),
            year=self._year_var.get(),
            month="all" if month == _MONTH_ALL else month,
            type_filter=_TYPE_LABELS.get(self._type_var.get(), DASHBOARD_ALL),
            today=today(),
        )
        self._year_combo.configure(values=data.years)
        self._title_label.configure(text=f"{data.year} {data.period_label} 倉儲結算")
        self._draw_cards(data)
        self.after(50, lambda d=data: self._draw_trend(d))
        self.after(50, lambda d=data: self._draw_share(d))
        self._draw_ranking(data)

    def _draw_cards(self, data: DashboardData):
        for w in self._card_frame.winfo_children():
            w.destroy()
        inbound = data.settlement.by_category[TransactionType.INBOUND]
        repair = data.settlement.by_category[TransactionType.REPAIR]
        cards = [
            ("📦 進貨費用結算", inbound.total, inbound.count, "#6366f1"),
            ("🛠️ 維修費用結算", repair.total, repair.count, "#f43f5e"),
            (f"💰 {data.period_label} 結算總支出", data.settlement.grand_total,
             data.settlement.grand_count, "#10b981"),
        ]
        for col, (label, total, count, color) in enumerate(cards):
            card = ctk.CTkFrame(self._card_frame, fg_color=("gray90", "gray20"), corner_radius=10)
            card.grid(row=0, column=col, padx=6, sticky="ew")
            card.grid_columnconfigure(0, weight=1)
            ctk.CTkLabel(card, text=label, font=ctk.CTkFont(size=12), text_color="gray60").grid(
                row=0, column=0, pady=(12, 0), padx=16
            )
            ctk.CTkLabel(
                card, text=format_currency(total),
                font=ctk.CTkFont(size=20, weight="bold"), text_color=color,
            ).grid(row=1, column=0, pady=(4, 0), padx=16)
            ctk.CTkLabel(card, text=f"{count} 筆", text_color="gray60").grid(
                row=2, column=0, pady=(0, 12), padx=16
            )

    def _draw_trend(self, data: DashboardData):
        ax = self._trend_ax
        ax.clear()
        self._style_ax(ax, self._trend_fig)
        x = list(range(12))
        amounts = [m.amount for m in data.trend]
        ax.plot(x, amounts, color=CHART_COLORS[0], linewidth=2)
        ax.fill_between(x, amounts, color=CHART_COLORS[0], alpha=0.2)
        ax.set_xticks(x)
        ax.set_xticklabels([m.label for m in data.trend], fontfamily=self._font_family)
        ax.yaxis.set_major_formatter(
            lambda v, _: f"{v/1000:.0f}k" if abs(v) >= 1000 else f"{v:.0f}"
        )
        self._trend_mpl.draw_idle()

    def _draw_share(self, data: DashboardData):
        ax = self._pie_ax
        ax.clear()
        self._style_ax(ax, self._pie_fig)
        for w in self._legend_frame.winfo_children():
            w.destroy()

        if not data.share or sum(s.value for s in data.share) == 0:
            ax.text(0.5, 0.5, "尚無資料", ha="center", va="center",
                    transform=ax.transAxes, color="gray", fontfamily=self._font_family)
            self._pie_mpl.draw_idle()
            return

        colors = [CHART_COLORS[i % len(CHART_COLORS)] for i in range(len(data.share))]
        ax.pie([s.value for s in data.share], colors=colors, startangle=90,
               wedgeprops={"width": 0.4})
        ax.set_aspect("equal")
        self._pie_mpl.draw_idle()

        for item, color in zip(data.share[:8], colors):
            row = ctk.CTkFrame(self._legend_frame, fg_color="transparent")
            row.pack(fill="x", pady=1)
            tk.Label(row, bg=color, width=2).pack(side="left", padx=(0, 4))
            ctk.CTkLabel(
                row, text=f"{item.name}: {format_currency(item.value)} ({format_percent(item.percent)})",
                anchor="w", font=ctk.CTkFont(size=11),
            ).pack(side="left")

    def _draw_ranking(self, data: DashboardData):
        for w in self._ranking_frame.winfo_children():
            w.destroy()
        if not data.ranking:
            ctk.CTkLabel(self._ranking_frame, text="本期間沒有維修紀錄", text_color="gray60").grid(
                row=0, column=0, columnspan=3, pady=20
            )
            return
        for idx, entry in enumerate(data.ranking):
            ctk.CTkLabel(self._ranking_frame, text=f"{idx + 1}. {entry.name}", anchor="w", width=180).grid(
                row=idx, column=0, padx=(4, 8), pady=3, sticky="w"
            )
            bar = ctk.CTkProgressBar(self._ranking_frame, progress_color=CHART_COLORS[3])
            bar.grid(row=idx, column=1, sticky="ew", padx=4)
            bar.set(entry.percentage / 100)
            ctk.CTkLabel(
                self._ranking_frame,
                text=f"{entry.count} 次 · {format_currency(entry.total)}",
                anchor="e", text_color="gray60", width=140,
            ).grid(row=idx, column=2, padx=(8, 4), sticky="e")
