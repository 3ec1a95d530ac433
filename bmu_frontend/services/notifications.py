from __future__ import annotations

from services.backend_client import BackendError, BackendHTTPError


INVALID_CREDENTIALS = "ชื่อผู้ใช้หรือรหัสผ่านไม่ถูกต้อง"
LOGIN_FAILED = "เกิดข้อผิดพลาดในการเข้าสู่ระบบ"
INSUFFICIENT_PERMISSION = "คุณไม่มีสิทธิ์ในการทำรายการนี้"
NOT_LOGGED_IN = "กรุณาเข้าสู่ระบบ"
GENERIC_FAILURE = "เกิดข้อผิดพลาดที่เซิร์ฟเวอร์"

# operation -> (success, failure)
MESSAGES: dict[str, tuple[str, str]] = {
    "login": ("เข้าสู่ระบบสำเร็จ!", LOGIN_FAILED),
    "logout": ("ออกจากระบบแล้ว", "ออกจากระบบไม่สำเร็จ"),
    "dashboard": ("", "ไม่สามารถดึงข้อมูลสรุปได้"),
    "equipment.list": ("", "ดึงข้อมูลอุปกรณ์ไม่สำเร็จ"),
    "equipment.categories": ("", "ดึงข้อมูลหมวดหมู่ไม่สำเร็จ"),
    "equipment.create": ("เพิ่มอุปกรณ์สำเร็จ", "เพิ่มอุปกรณ์ไม่สำเร็จ"),
    "equipment.delete": ("ลบอุปกรณ์สำเร็จ", "ลบอุปกรณ์ไม่สำเร็จ"),
    "equipment.status": ("อัปเดตสถานะสำเร็จ", "อัปเดตสถานะไม่สำเร็จ"),
    "equipment.passwords": ("", "ดึงข้อมูลรหัสผ่านไม่สำเร็จ"),
    "equipment.passwords.add": ("เพิ่มรหัสผ่านสำเร็จ", "เพิ่มรหัสผ่านไม่สำเร็จ"),
    "equipment.passwords.delete": ("ลบรหัสผ่านสำเร็จ", "ลบรหัสผ่านไม่สำเร็จ"),
    "borrow.list": ("", "ดึงข้อมูลอุปกรณ์ไม่สำเร็จ"),
    "borrow.available": ("", "ไม่สามารถดึงรายการอุปกรณ์ที่ว่างได้"),
    "borrow.submit": ("ส่งคำขอยืมสำเร็จ กรุณารอผู้อนุมัติทำรายการ", "ส่งคำขอยืมไม่สำเร็จ"),
    "borrow.return": ("ส่งคำขอคืนอุปกรณ์ส่วนกลางสำเร็จ กรุณารอการอนุมัติ", "ส่งคำขอคืนไม่สำเร็จ"),
    "approvals.list": ("", "ไม่สามารถดึงข้อมูลคำขอที่รออนุมัติได้"),
    "approvals.approve": ("อนุมัติคำขอสำเร็จ", "ไม่สามารถอนุมัติคำขอได้"),
    "approvals.reject": ("ปฏิเสธคำขอสำเร็จ", "ไม่สามารถปฏิเสธคำขอได้"),
    "broken.list": ("", "ดึงข้อมูลการแจ้งซ่อมไม่สำเร็จ"),
    "broken.reportable": ("", "ไม่สามารถดึงรายการอุปกรณ์มารายงานได้"),
    "broken.report": ("แจ้งอุปกรณ์เสียสำเร็จ", "แจ้งอุปกรณ์เสียไม่สำเร็จ"),
    "broken.resolve": ("บันทึกการซ่อมแซมสำเร็จ สถานะอุปกรณ์กลับมาใช้งานได้แล้ว", "บันทึกการซ่อมไม่สำเร็จ"),
    "my.list": ("", "ดึงข้อมูลอุปกรณ์ไม่สำเร็จ"),
    "my.bind": ("ผูกอุปกรณ์สำเร็จ", "ผูกอุปกรณ์ไม่สำเร็จ ตรวจสอบรหัสสินทรัพย์อีกครั้ง"),
    "my.location": ("อัปเดตสถานที่ใช้งานสำเร็จ", "ไม่สามารถอัปเดตสถานที่ใช้งานได้"),
    "vault.unlock": ("ปลดล็อคสำเร็จ", "รหัส PIN ไม่ถูกต้อง"),
    "vault.list": ("", "ไม่สามารถดึงข้อมูลรหัสผ่านได้"),
    "vault.create": ("เพิ่มข้อมูลสำเร็จ", "ไม่สามารถเพิ่มข้อมูลได้"),
    "vault.update": ("อัพเดทข้อมูลสำเร็จ", "ไม่สามารถอัพเดทข้อมูลได้"),
    "vault.delete": ("ลบรหัสผ่านสำเร็จ", "ไม่สามารถลบรหัสผ่านได้"),
    "users.list": ("", "ดึงข้อมูลผู้ใช้งานไม่สำเร็จ"),
    "users.create": ("เพิ่มผู้ใช้งานสำเร็จ", "เพิ่มผู้ใช้งานไม่สำเร็จ"),
    "users.delete": ("ลบผู้ใช้งานสำเร็จ", "ลบผู้ใช้งานไม่สำเร็จ"),
}

PERMISSION_OVERRIDES = {
    "users.create": "คุณไม่มีสิทธิ์ในการเพิ่มผู้ใช้งาน",
}


def success_message(operation: str) -> str:
    return MESSAGES[operation][0]


def failure_message(operation: str) -> str:
    return MESSAGES.get(operation, ("", GENERIC_FAILURE))[1]


def describe_failure(operation: str, exc: BackendError) -> tuple[int, str]:
    """Map a backend failure to the status code and Thai notification the
    page API answers with."""
    status_code = exc.status_code if isinstance(exc, BackendHTTPError) else None
    if operation == "login" and status_code == 401:
        return 401, INVALID_CREDENTIALS
    if status_code == 403:
        return 403, PERMISSION_OVERRIDES.get(operation, INSUFFICIENT_PERMISSION)

    message = failure_message(operation)
    if exc.detail:
        message = f"{message}: {exc.detail}"
    if status_code is not None and 400 <= status_code < 500:
        return status_code, message
    return 502, message
