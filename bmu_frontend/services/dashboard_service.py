from __future__ import annotations

from schemas.dashboard import DashboardSummary


CARD_TITLES = [
    ("totalEquipment", "อุปกรณ์ทั้งหมด"),
    ("brokenEquipment", "อุปกรณ์เสีย / รอซ่อม"),
    ("borrowsThisMonth", "การยืมในเดือนนี้"),
]
PIE_TITLE = "สัดส่วนอุปกรณ์ตามหมวดหมู่"


def build_dashboard_view(summary: DashboardSummary) -> dict:
    cards = [
        {"key": key, "title": title, "value": int(getattr(summary, key))}
        for key, title in CARD_TITLES
    ]
    total = sum(max(item.value, 0) for item in summary.categoryCounts)
    segments = []
    for item in summary.categoryCounts:
        percent = round(item.value * 100 / total) if total > 0 else 0
        segments.append(
            {
                "name": item.name,
                "value": item.value,
                "percent": percent,
                "label": f"{item.name} {percent}%",
            }
        )
    return {
        "cards": cards,
        "pie": {"title": PIE_TITLE, "segments": segments},
    }
