"""
utils/exports.py
-----------------
Downloadable timetable files (CSV, Excel, PDF).

Each exporter takes the timetable document and a list of rows, one per slot,
already resolved to display names:
    {"day", "start_time", "end_time", "subject", "instructor", "venue"}
"""

import csv
import io

from flask import make_response
from openpyxl import Workbook
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.units import cm
from reportlab.pdfgen import canvas

HEADER = ["#", "Day", "Start", "End", "Subject", "Instructor", "Venue"]
EXPORT_FORMATS = ("csv", "xlsx", "pdf")


def _row(i, slot):
    return [i, slot["day"], slot["start_time"], slot["end_time"],
            slot["subject"], slot["instructor"], slot["venue"]]


def _attachment(body, filename, content_type):
    resp = make_response(body)
    resp.headers["Content-Disposition"] = f"attachment; filename={filename}"
    resp.headers["Content-Type"] = content_type
    return resp


def export_timetable(fmt, timetable, rows):
    fmt = fmt.lower()
    if fmt == "csv":
        return export_csv(timetable, rows)
    if fmt == "xlsx":
        return export_excel(timetable, rows)
    if fmt == "pdf":
        return export_pdf(timetable, rows)
    raise ValueError(f"Unsupported export format: {fmt}")


def export_csv(timetable, rows):
    buffer = io.StringIO()
    writer = csv.writer(buffer)

    writer.writerow(["Timetable", timetable.get("title", "")])
    writer.writerow(["Group", timetable.get("group_name", "")])
    writer.writerow(["Description", timetable.get("description", "")])
    writer.writerow(["Published", "Yes" if timetable.get("is_published") else "No"])
    writer.writerow([])

    writer.writerow(HEADER)
    for i, slot in enumerate(rows, start=1):
        writer.writerow(_row(i, slot))

    return _attachment(buffer.getvalue(), f"timetable_{timetable['_id']}.csv", "text/csv; charset=utf-8")


def export_excel(timetable, rows):
    wb = Workbook()
    ws = wb.active
    ws.title = "Timetable"

    ws.append(["Timetable", timetable.get("title", "")])
    ws.append(["Group", timetable.get("group_name", "")])
    ws.append(["Description", timetable.get("description", "")])
    ws.append(["Published", "Yes" if timetable.get("is_published") else "No"])
    ws.append([])

    ws.append(HEADER)
    for i, slot in enumerate(rows, start=1):
        ws.append(_row(i, slot))

    buffer = io.BytesIO()
    wb.save(buffer)
    buffer.seek(0)

    return _attachment(buffer.getvalue(), f"timetable_{timetable['_id']}.xlsx",
                       "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet")


def export_pdf(timetable, rows):
    buffer = io.BytesIO()
    p = canvas.Canvas(buffer, pagesize=landscape(A4))
    width, height = landscape(A4)
    y = height - 60

    p.setFont("Helvetica-Bold", 16)
    p.drawString(2 * cm, y, f"Timetable - {timetable.get('title', '')}")
    y -= 22

    p.setFont("Helvetica", 11)
    p.drawString(2 * cm, y, f"Group: {timetable.get('group_name', '')}")
    y -= 15
    p.drawString(2 * cm, y, f"Description: {timetable.get('description', '')}")
    y -= 25

    columns = [2, 3, 7, 10, 13, 19, 24]  # x positions in cm
    p.setFont("Helvetica-Bold", 10)
    for x, title in zip(columns, HEADER):
        p.drawString(x * cm, y, title)
    y -= 15

    p.setFont("Helvetica", 10)
    for i, slot in enumerate(rows, start=1):
        for x, value in zip(columns, _row(i, slot)):
            p.drawString(x * cm, y, str(value))
        y -= 13
        if y < 60:
            p.showPage()
            p.setFont("Helvetica", 10)
            y = height - 60

    p.save()
    pdf = buffer.getvalue()
    buffer.close()

    return _attachment(pdf, f"timetable_{timetable['_id']}.pdf", "application/pdf")
