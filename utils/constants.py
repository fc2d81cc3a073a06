APP_NAME = "倉儲月結管理系統"
APP_WIDTH = 1280
APP_HEIGHT = 800
STORE_FILE = "warehouse_ledger.xlsx"

DATE_FORMAT = "%Y-%m-%d"
TAIPEI_UTC_OFFSET_HOURS = 8

# Read-side defaults for blank cells
DEFAULT_ACCOUNT_CATEGORY = "A"
DEFAULT_MACHINE_CATEGORY = "BA"
DEFAULT_OPERATOR = "系統"
DEFAULT_MATERIAL_NAME = "未命名"
UNCATEGORIZED = "未分類"

SCRAP_MARKER = "【報廢】"
TRUTHY_STRINGS = ("TRUE", "1", "YES", "是")

ACCOUNT_CATEGORIES = ["A", "B", "C"]
MACHINE_CATEGORIES = ["BA", "RL", "SB", "XD", "7UP", "HOT8", "3card", "DT", "CG", "共用"]

OPERATORS = ["Mountain", "Uri", "Simon", "George", "Barry", "Jason", "Nick"]

INACTIVITY_LIMIT_SECONDS = 5 * 60
ITEMS_PER_PAGE = 15
MONTHLY_SCOPE_LIMIT = 10
REPAIR_RANKING_LIMIT = 10
REQUEST_TIMEOUT_SECONDS = 30
FETCH_RETRIES = 1

STATUS_FILTERS = {
    "all":             "全部狀態",
    "pending_inbound": "⏳ 尚未收貨",
    "scrapped":        "💀 僅報廢",
    "repairing":       "🛠️ 維修中",
}

CHART_COLORS = [
    "#6366f1", "#10b981", "#f59e0b", "#f43f5e",
    "#ec4899", "#8b5cf6", "#06b6d4", "#94a3b8",
]
