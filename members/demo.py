"""
Demonstration scripts for member management.

These functions wire an in-memory stack and walk through the interesting
behaviours: the normal lifecycle, an email that fails after the member was
saved, and two updates racing on the same member.
"""

import threading

from members.errors import BusinessLogicException, ConcurrentUpdateConflict
from members.models import Member, MemberPatch
from members.service import MemberService
from members.store import MemberStore
from notifications.channels import EmailChannel
from notifications.email_listener import MemberEmailListener
from notifications.event_bus import EventBus


def _banner(title: str) -> None:
    print("\n" + "=" * 70)
    print(f"MEMBER DEMO: {title}")
    print("=" * 70 + "\n")


def _step(text: str) -> None:
    print("-" * 70)
    print(f"ACTION: {text}")
    print("-" * 70)


def run_lifecycle_demo() -> list[str]:
    """
    Create, reject a duplicate, patch, delete, then fail to find.

    Returns the outcome of each step, for tests.
    """
    _banner("Member Lifecycle")
    event_bus = EventBus(asynchronous=False)
    email_channel = EmailChannel()
    listener = MemberEmailListener(event_bus, email_channel)
    service = MemberService(MemberStore(), event_bus)
    listener.start()

    outcomes = []

    def attempt(description, action):
        _step(description)
        try:
            result = action()
            outcomes.append(f"ok: {result}")
        except BusinessLogicException as e:
            outcomes.append(f"{e.exception_code.name}: {e}")
        print(f"  -> {outcomes[-1]}\n")

    attempt(
        "create a@x.com",
        lambda: service.create_member(Member(email="a@x.com", name="A", phone="010-0000-0000")),
    )
    attempt(
        "create a@x.com again",
        lambda: service.create_member(Member(email="a@x.com", name="A2", phone="010-1111-1111")),
    )
    attempt("set phone of member 1", lambda: service.update_member(MemberPatch(member_id=1, phone="555")))
    attempt("delete member 1", lambda: service.delete_member(1))
    attempt("find member 1", lambda: service.find_member(1))

    print("Emails sent:")
    for msg in email_channel.sent_messages:
        print(f"  {msg}")

    listener.stop()
    return outcomes


def run_mail_failure_demo() -> bool:
    """
    Show that a failed welcome email does not undo the registration.

    Returns True when the member is still present after the email failed.
    """
    _banner("Welcome Email Fails After Commit")
    event_bus = EventBus(asynchronous=True, max_workers=1)
    email_channel = EmailChannel(fail_rate=1.0, delay_seconds=0.5)
    listener = MemberEmailListener(event_bus, email_channel)
    service = MemberService(MemberStore(), event_bus)
    listener.start()

    _step("create b@x.com while the mail relay is down")
    member = service.create_member(Member(email="b@x.com", name="B", phone="010-2222-2222"))
    print(f"  -> create_member returned {member.member_id} before the email was attempted\n")

    event_bus.wait_for_pending(timeout=5)
    still_there = service.find_member(member.member_id) is not None
    print(f"Failed deliveries: {len(listener.get_failed_deliveries())}")
    print(f"Member {member.member_id} still registered: {still_there}")

    listener.stop()
    event_bus.shutdown()
    return still_there


def run_concurrent_update_demo() -> list[str]:
    """
    Race two updates on the same member; one wins, the loser retries.

    Returns each worker's outcome in completion order.
    """
    _banner("Concurrent Updates")
    service = MemberService(MemberStore(), EventBus(asynchronous=False))
    member = service.create_member(Member(email="c@x.com", name="C", phone="010-3333-3333"))

    outcomes = []
    lock = threading.Lock()

    def worker(patch: MemberPatch) -> None:
        for attempt in range(1, 4):
            try:
                service.update_member(patch)
            except ConcurrentUpdateConflict:
                with lock:
                    outcomes.append(f"{sorted(patch.present_fields())} conflict on attempt {attempt}")
                continue
            with lock:
                outcomes.append(f"{sorted(patch.present_fields())} applied on attempt {attempt}")
            return

    threads = [
        threading.Thread(target=worker, args=(MemberPatch(member_id=member.member_id, name="C-renamed"),)),
        threading.Thread(target=worker, args=(MemberPatch(member_id=member.member_id, phone="555"),)),
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    for line in outcomes:
        print(f"  {line}")
    final = service.find_member(member.member_id)
    print(f"\nFinal state: name={final.name} phone={final.phone}")
    return outcomes
