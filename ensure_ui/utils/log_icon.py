icon = {
    "running": "🔄",
    "check": "✅",
    "cross": "❌",
    "warning": "⚠️",
    "page": "🌐",
    "flow": "🔀",
    "robot": "🤖",
    "finish": "🏁",
}
