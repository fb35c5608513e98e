import pytest

from workload.data import build_dataset, normalize_hours
from workload.models import HoursRows
from workload.settings import settings_from_dict


def hebrew_row(**overrides):
    row = {
        "שם משפחה + פרטי": "דנה",
        "מספר עובד": "1001",
        "סוג עובד": "עובד מתף",
        "תאריך דיווח": "01/03/2024",
        'סה"כ שעות מדווחות': 5,
        "משימה": "123456 - Build",
        "פעילות משנה": "Backend",
        "פעילות.סיווג חשבונאי": "השקעה",
    }
    row.update(overrides)
    return row


def english_row(**overrides):
    row = {
        "Employee": "Avi",
        "EmployeeId": "1002",
        "Employee Type": "Employee Project",
        "Date": "2024-03-02",
        "Hours": 3,
        "Task": "Support",
        "Classification": "Maintenance",
    }
    row.update(overrides)
    return row


@pytest.fixture
def settings():
    return settings_from_dict(None)


@pytest.fixture
def hours_rows():
    return [
        hebrew_row(),
        hebrew_row(**{"תאריך דיווח": "10/02/2024", 'סה"כ שעות מדווחות': 2, "משימה": "Support",
                      "פעילות.סיווג חשבונאי": "תחזוקה"}),
        english_row(),
        english_row(Date="2024-03-03", Hours=12, Task="123456 - Build", Classification="Development"),
    ]


@pytest.fixture
def requirement_rows():
    return [
        {
            "מספר": "123456",
            "נושא": "Build",
            "תקציב שנתי": 10000,
            "ביצוע כולל בקשות רכש פתוחות": 4000,
            "דורש הדרישה": "Ops",
        },
        {
            "מספר": "222222",
            "נושא": "Migration",
            "תקציב שנתי": "₪1,000",
            "ביצוע כולל בקשות רכש פתוחות": "1,500",
            "דורש הדרישה": "Finance",
            "סטטוס": "Active",
        },
    ]


@pytest.fixture
def hours_records(hours_rows, settings):
    return normalize_hours(hours_rows, settings)


@pytest.fixture
def dataset(hours_rows, requirement_rows, settings):
    return build_dataset(HoursRows(rows=hours_rows), requirement_rows, settings)
