"""
Command-line front end for the Academic Scheduler API.

    scheduler login <email>
    scheduler groups list | add | update | delete
    scheduler venues list | add | delete
    scheduler subjects list | add | delete
    scheduler timetables list | show | create | publish | delete | add-slot | remove-slot | export
    scheduler users list [--role Lecturer]
    scheduler requests list | approve | reject

Every command prints a plain-text table or a one-line status message.
API failures are printed and the process exits with status 1.
"""

from __future__ import annotations

import argparse
import getpass
import sys
from pathlib import Path
from typing import Any, Sequence

from client.api_client import ApiClient, ApiError
from client.stores import DuplicateNameError, GroupStore, SubjectStore, TimetableStore, VenueStore


# ---------------------------------------------------------------------------
# Output helpers
# ---------------------------------------------------------------------------


def print_table(headers: Sequence[str], rows: Sequence[Sequence[Any]]) -> None:
    cells = [[str(h) for h in headers]] + [["" if v is None else str(v) for v in row] for row in rows]
    widths = [max(len(r[i]) for r in cells) for i in range(len(headers))]

    def line(values: list[str]) -> str:
        return "  ".join(v.ljust(w) for v, w in zip(values, widths)).rstrip()

    print(line(cells[0]))
    print("  ".join("-" * w for w in widths))
    for row in cells[1:]:
        print(line(row))
    if not rows:
        print("(none)")


def _name(person: Any) -> str:
    if isinstance(person, dict):
        return f"{person.get('firstName', '')} {person.get('lastName', '')}".strip()
    return person or ""


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def _cmd_login(args: argparse.Namespace, api: ApiClient) -> int:
    password = args.password or getpass.getpass("Password: ")
    result = api.login(args.email, password)
    user = result["user"]
    print(f"Logged in as {_name(user)} ({user['role']})")
    if result.get("passwordChangeRequired"):
        print("Please change your password with: scheduler change-password")
    return 0


def _cmd_logout(args: argparse.Namespace, api: ApiClient) -> int:
    api.logout()
    print("Logged out")
    return 0


def _cmd_whoami(args: argparse.Namespace, api: ApiClient) -> int:
    user = api.me()
    print_table(["ID", "Name", "Email", "Role"], [[user["id"], _name(user), user["email"], user["role"]]])
    return 0


def _cmd_change_password(args: argparse.Namespace, api: ApiClient) -> int:
    current = args.current or getpass.getpass("Current password: ")
    new = args.new or getpass.getpass("New password: ")
    api.change_password(current, new)
    print("Password changed successfully")
    return 0


def _cmd_groups(args: argparse.Namespace, api: ApiClient) -> int:
    store = GroupStore(api)

    if args.action == "list":
        groups = store.refresh()
        print_table(
            ["ID", "Name", "Faculty", "Department", "Year", "Sem", "Type", "Students"],
            [[g["id"], g["name"], g["faculty"], g["department"], g["year"], g["semester"],
              g["groupType"], len(g.get("students", []))] for g in groups],
        )
        return 0

    if args.action == "add":
        group = store.create({
            "name": args.name, "faculty": args.faculty, "department": args.department,
            "year": args.year, "semester": args.semester, "groupType": args.type,
        })
        print(f"Group created: {group['id']} {group['name']}")
        return 0

    if args.action == "update":
        data = {k: v for k, v in (("name", args.name), ("year", args.year), ("semester", args.semester))
                if v is not None}
        group = store.update(args.id, data)
        print(f"Group updated: {group['id']} {group['name']}")
        return 0

    store.delete(args.id)
    print(f"Group deleted: {args.id}")
    return 0


def _cmd_venues(args: argparse.Namespace, api: ApiClient) -> int:
    store = VenueStore(api)

    if args.action == "list":
        venues = store.refresh()
        print_table(
            ["ID", "Hall", "Building", "Faculty", "Type", "Capacity", "Booked"],
            [[v["id"], v["hallName"], v["building"], v["faculty"], v["type"], v["capacity"],
              len(v.get("bookedSlots", []))] for v in venues],
        )
        return 0

    if args.action == "add":
        venue = store.create({
            "faculty": args.faculty, "department": args.department, "building": args.building,
            "hallName": args.hall, "type": args.type, "capacity": args.capacity,
        })
        print(f"Venue created: {venue['id']} {venue['hallName']}")
        return 0

    store.delete(args.id)
    print(f"Venue deleted: {args.id}")
    return 0


def _cmd_subjects(args: argparse.Namespace, api: ApiClient) -> int:
    store = SubjectStore(api)

    if args.action == "list":
        subjects = store.refresh()
        print_table(
            ["ID", "Code", "Name", "Credits", "Department", "Lecturer", "Status"],
            [[s["id"], s["code"], s["name"], s["credits"], s["department"], _name(s.get("lecturer")),
              s["status"]] for s in subjects],
        )
        return 0

    if args.action == "add":
        subject = store.create({
            "name": args.name, "code": args.code, "credits": args.credits,
            "description": args.description, "lecturer": args.lecturer, "department": args.department,
        })
        print(f"Subject created: {subject['id']} {subject['code']}")
        return 0

    store.delete(args.id)
    print(f"Subject deleted: {args.id}")
    return 0


def _print_slots(timetable: dict) -> None:
    print(f"{timetable['title']} [{timetable['group']}]"
          f"{' (published)' if timetable.get('isPublished') else ''}")
    print_table(
        ["Slot", "Day", "Start", "End", "Subject", "Instructor", "Venue"],
        [[s["id"], s["day"], s["startTime"], s["endTime"], s["subject"], s["instructor"], s["venue"]]
         for s in timetable.get("slots", [])],
    )


def _cmd_timetables(args: argparse.Namespace, api: ApiClient) -> int:
    store = TimetableStore(api, group=getattr(args, "group", None))

    if args.action == "list":
        timetables = store.refresh()
        print_table(
            ["ID", "Title", "Group", "Published", "Slots"],
            [[t["id"], t["title"], t["group"], "yes" if t.get("isPublished") else "no", len(t.get("slots", []))]
             for t in timetables],
        )
        return 0

    if args.action == "show":
        _print_slots(api.get_timetable(args.id))
        return 0

    if args.action == "create":
        timetable = store.create({"title": args.title, "description": args.description, "groupName": args.group})
        print(f"Timetable created: {timetable['id']} {timetable['title']}")
        return 0

    if args.action == "publish":
        timetable = store.update(args.id, {"isPublished": not args.unpublish})
        print(f"Timetable {'published' if timetable['isPublished'] else 'unpublished'}: {timetable['id']}")
        return 0

    if args.action == "add-slot":
        timetable = store.add_slot(args.id, {
            "subject": args.subject, "instructor": args.instructor, "venue": args.venue,
            "day": args.day, "startTime": args.start, "endTime": args.end,
        })
        _print_slots(timetable)
        return 0

    if args.action == "remove-slot":
        _print_slots(store.delete_slot(args.id, args.slot_id))
        return 0

    if args.action == "export":
        content = api.export_timetable(args.id, args.format)
        out = Path(args.out or f"timetable_{args.id}.{args.format}")
        out.write_bytes(content)
        print(f"Exported timetable to: {out}")
        return 0

    store.delete(args.id)
    print(f"Timetable deleted: {args.id}")
    return 0


def _cmd_users(args: argparse.Namespace, api: ApiClient) -> int:
    users = api.users_by_role(args.role) if args.role else api.list_users()
    print_table(["ID", "Name", "Email", "Role"], [[u["id"], _name(u), u["email"], u["role"]] for u in users])
    return 0


def _cmd_requests(args: argparse.Namespace, api: ApiClient) -> int:
    if args.action == "list":
        requests_ = api.requests_by_status(args.status) if args.status else api.list_requests()
        print_table(
            ["ID", "Name", "Email", "Role", "Status"],
            [[r["id"], _name(r), r["email"], r["role"], r["status"]] for r in requests_],
        )
        return 0

    if args.action == "approve":
        api.approve_request(args.id)
        user = api.register_user(args.id)
        print(f"Approved and registered {user['email']} (default password: {user['defaultPassword']})")
        return 0

    api.reject_request(args.id, args.reason)
    print(f"Request rejected: {args.id}")
    return 0


COMMANDS = {
    "login": _cmd_login,
    "logout": _cmd_logout,
    "whoami": _cmd_whoami,
    "change-password": _cmd_change_password,
    "groups": _cmd_groups,
    "venues": _cmd_venues,
    "subjects": _cmd_subjects,
    "timetables": _cmd_timetables,
    "users": _cmd_users,
    "requests": _cmd_requests,
}


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """
    Build the argparse CLI parser with sub-commands.
    """
    parser = argparse.ArgumentParser(prog="scheduler", description="Academic Scheduler CLI")
    parser.add_argument("--api-url", help="API base URL (default: $SCHEDULER_API_URL)")
    sub = parser.add_subparsers(dest="command", required=True)

    p_login = sub.add_parser("login", help="Log in and store the session")
    p_login.add_argument("email")
    p_login.add_argument("--password")

    sub.add_parser("logout", help="Log out and forget the session")
    sub.add_parser("whoami", help="Show the logged-in user")

    p_pw = sub.add_parser("change-password", help="Change your password")
    p_pw.add_argument("--current")
    p_pw.add_argument("--new")

    # groups
    p_groups = sub.add_parser("groups", help="Manage student groups")
    g_sub = p_groups.add_subparsers(dest="action", required=True)
    g_sub.add_parser("list", help="List groups")
    g_add = g_sub.add_parser("add", help="Create a group")
    g_add.add_argument("name")
    g_add.add_argument("--faculty", required=True)
    g_add.add_argument("--department", required=True)
    g_add.add_argument("--year", type=int, required=True)
    g_add.add_argument("--semester", type=int, required=True)
    g_add.add_argument("--type", choices=["weekday", "weekend"], default="weekday")
    g_update = g_sub.add_parser("update", help="Update a group")
    g_update.add_argument("id")
    g_update.add_argument("--name")
    g_update.add_argument("--year", type=int)
    g_update.add_argument("--semester", type=int)
    g_delete = g_sub.add_parser("delete", help="Delete a group")
    g_delete.add_argument("id")

    # venues
    p_venues = sub.add_parser("venues", help="Manage venues")
    v_sub = p_venues.add_subparsers(dest="action", required=True)
    v_sub.add_parser("list", help="List venues")
    v_add = v_sub.add_parser("add", help="Create a venue")
    v_add.add_argument("hall")
    v_add.add_argument("--faculty", required=True)
    v_add.add_argument("--department", required=True)
    v_add.add_argument("--building", required=True)
    v_add.add_argument("--type", choices=["lecture", "tutorial", "lab"], default="lecture")
    v_add.add_argument("--capacity", type=int, required=True)
    v_delete = v_sub.add_parser("delete", help="Delete a venue")
    v_delete.add_argument("id")

    # subjects
    p_subjects = sub.add_parser("subjects", help="Manage subjects")
    s_sub = p_subjects.add_subparsers(dest="action", required=True)
    s_sub.add_parser("list", help="List subjects")
    s_add = s_sub.add_parser("add", help="Create a subject")
    s_add.add_argument("code")
    s_add.add_argument("name")
    s_add.add_argument("--credits", type=int, required=True)
    s_add.add_argument("--department", required=True)
    s_add.add_argument("--lecturer", required=True, help="Lecturer user id")
    s_add.add_argument("--description", default="")
    s_delete = s_sub.add_parser("delete", help="Delete a subject")
    s_delete.add_argument("id")

    # timetables
    p_tt = sub.add_parser("timetables", help="Manage timetables")
    t_sub = p_tt.add_subparsers(dest="action", required=True)
    t_list = t_sub.add_parser("list", help="List timetables")
    t_list.add_argument("--group")
    t_show = t_sub.add_parser("show", help="Show a timetable's slots")
    t_show.add_argument("id")
    t_create = t_sub.add_parser("create", help="Create a timetable")
    t_create.add_argument("title")
    t_create.add_argument("--group", required=True)
    t_create.add_argument("--description", default="")
    t_publish = t_sub.add_parser("publish", help="Publish a timetable")
    t_publish.add_argument("id")
    t_publish.add_argument("--unpublish", action="store_true")
    t_delete = t_sub.add_parser("delete", help="Delete a timetable")
    t_delete.add_argument("id")
    t_slot = t_sub.add_parser("add-slot", help="Add a slot to a timetable")
    t_slot.add_argument("id")
    t_slot.add_argument("--subject", required=True)
    t_slot.add_argument("--instructor", required=True)
    t_slot.add_argument("--venue", required=True)
    t_slot.add_argument("--day", required=True)
    t_slot.add_argument("--start", required=True, help="HH:MM")
    t_slot.add_argument("--end", required=True, help="HH:MM")
    t_rm = t_sub.add_parser("remove-slot", help="Remove a slot from a timetable")
    t_rm.add_argument("id")
    t_rm.add_argument("slot_id")
    t_export = t_sub.add_parser("export", help="Download a timetable")
    t_export.add_argument("id")
    t_export.add_argument("--format", choices=["pdf", "xlsx", "csv"], default="pdf")
    t_export.add_argument("--out")

    # users & requests
    p_users = sub.add_parser("users", help="List users")
    p_users.add_argument("--role", choices=["Admin", "Lecturer", "Student"])

    p_req = sub.add_parser("requests", help="Review registration requests")
    r_sub = p_req.add_subparsers(dest="action", required=True)
    r_list = r_sub.add_parser("list", help="List requests")
    r_list.add_argument("--status", choices=["Pending", "Approved", "Rejected"])
    r_approve = r_sub.add_parser("approve", help="Approve a request and create the account")
    r_approve.add_argument("id")
    r_reject = r_sub.add_parser("reject", help="Reject a request")
    r_reject.add_argument("id")
    r_reject.add_argument("--reason")

    return parser


def main(argv: list[str] | None = None, api: ApiClient | None = None) -> None:
    """
    CLI entry point. Parses args, dispatches to command handlers,
    and exits via SystemExit with a return code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    api = api or ApiClient(base_url=args.api_url)

    try:
        code = COMMANDS[args.command](args, api)
    except DuplicateNameError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        code = 1
    except ApiError as exc:
        print(f"Error: {exc.message}", file=sys.stderr)
        code = 1

    raise SystemExit(code)


if __name__ == "__main__":
    main()
