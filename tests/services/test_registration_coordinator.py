"""
Tests for RegistrationApprovalCoordinator -- registration orchestration.

Covers:
- submit(): request type and first approver derived from the requested role
- approve(): next approver notified; last approval marks the registration
  approved, provisions the account exactly once, notifies the applicant
- reject(): registration marked rejected with the reason, applicant notified
- Notification failures are logged and never undo the transition
"""

from uuid import uuid4

import pytest
from sqlalchemy import func, select

from approval_kernel.domain.collaborators import NotificationEvent
from approval_kernel.domain.workflow import RegistrationStatus, RequestType
from approval_kernel.exceptions import (
    RegistrationRequestNotFoundError,
    UnknownRequestTypeError,
)
from approval_kernel.models.directory import UserModel
from approval_kernel.services.registration_coordinator import (
    RegistrationApprovalCoordinator,
)


class FailingDispatcher:
    """Dispatcher whose transport is down."""

    def __init__(self):
        self.attempts = 0

    def notify(self, event, recipient, payload):
        self.attempts += 1
        raise ConnectionError("SMTP unavailable")


@pytest.fixture
def staff_request(create_registration, org):
    return create_registration(
        "staff", department_id=org.department_id, college_id=org.college_id,
    )


class TestSubmit:
    def test_student_goes_to_class_teacher(self, coordinator, create_registration, org, notifier):
        req = create_registration(
            "student",
            department_id=org.department_id,
            college_id=org.college_id,
            class_name=org.class_name,
            name="Asha",
        )

        wf = coordinator.submit(req.id)

        assert wf.request_type == RequestType.STUDENT_REGISTRATION
        assert wf.current_approver_role == "staff"
        assert wf.current_approver_id == org.class_teacher.id

        event, recipient, payload = notifier.sent[-1]
        assert event == NotificationEvent.APPROVAL_REQUIRED
        assert recipient == org.class_teacher.email
        assert payload["applicant_name"] == "Asha"
        assert payload["workflow_id"] == str(wf.workflow_id)

    @pytest.mark.parametrize(
        "requested_role, first_role",
        [("staff", "hod"), ("hod", "principal"), ("principal", "admin")],
    )
    def test_first_role_by_requested_role(
        self, coordinator, create_registration, org, requested_role, first_role,
    ):
        req = create_registration(
            requested_role, department_id=org.department_id, college_id=org.college_id,
        )
        assert coordinator.submit(req.id).current_approver_role == first_role

    def test_open_claim_sends_no_notification(self, coordinator, create_registration, notifier, captured_logs):
        req = create_registration("hod", department_id=uuid4(), college_id=uuid4())

        wf = coordinator.submit(req.id)

        assert wf.is_open_claim
        assert notifier.sent == []
        assert any(r["message"] == "approval_step_open_claim" for r in captured_logs())

    def test_unknown_registration(self, coordinator):
        with pytest.raises(RegistrationRequestNotFoundError):
            coordinator.submit(uuid4())

    def test_requested_role_without_chain(self, coordinator, create_registration):
        req = create_registration("librarian")
        with pytest.raises(UnknownRequestTypeError):
            coordinator.submit(req.id)


class TestApprove:
    def test_intermediate_approval_notifies_next_approver(
        self, coordinator, staff_request, org, notifier, acting, registration_store,
    ):
        wf = coordinator.submit(staff_request.id)

        outcome = coordinator.approve(wf.workflow_id, acting(org.hod))

        assert not outcome.finalized
        event, recipient, _ = notifier.sent[-1]
        assert event == NotificationEvent.APPROVAL_REQUIRED
        assert recipient == org.principal.email
        record = registration_store.find_by_id(staff_request.id)
        assert record.status == RegistrationStatus.PENDING

    def test_final_approval_provisions_account(
        self, session, coordinator, staff_request, org, notifier, acting, registration_store,
    ):
        wf = coordinator.submit(staff_request.id)
        step2 = coordinator.approve(wf.workflow_id, acting(org.hod)).next_step

        outcome = coordinator.approve(step2.workflow_id, acting(org.principal))

        assert outcome.finalized
        record = registration_store.find_by_id(staff_request.id)
        assert record.status == RegistrationStatus.APPROVED

        user = session.execute(
            select(UserModel).where(UserModel.registration_request_id == staff_request.id)
        ).scalar_one()
        assert user.email == staff_request.email
        assert user.role == "staff"
        assert user.status == "active"
        assert user.department_id == org.department_id

        event, recipient, payload = notifier.sent[-1]
        assert event == NotificationEvent.REGISTRATION_APPROVED
        assert recipient == staff_request.email
        assert payload["user_id"] == str(user.id)

    def test_finalize_is_idempotent(self, session, registration_store, staff_request):
        first = registration_store.finalize(staff_request.id)
        second = registration_store.finalize(staff_request.id)

        assert first == second
        count = session.execute(
            select(func.count(UserModel.id)).where(
                UserModel.registration_request_id == staff_request.id
            )
        ).scalar_one()
        assert count == 1


class TestReject:
    def test_rejection_updates_registration_and_notifies(
        self, coordinator, staff_request, org, notifier, acting, registration_store,
    ):
        wf = coordinator.submit(staff_request.id)

        coordinator.reject(wf.workflow_id, acting(org.hod), "Department is full")

        record = registration_store.find_by_id(staff_request.id)
        assert record.status == RegistrationStatus.REJECTED
        event, recipient, payload = notifier.sent[-1]
        assert event == NotificationEvent.REGISTRATION_REJECTED
        assert recipient == staff_request.email
        assert payload["reason"] == "Department is full"

    def test_rejection_reason_and_reviewer_stored(
        self, session, coordinator, staff_request, org, acting,
    ):
        wf = coordinator.submit(staff_request.id)
        coordinator.reject(wf.workflow_id, acting(org.hod), "Incomplete documents")

        session.refresh(staff_request)
        assert staff_request.rejection_reason == "Incomplete documents"
        assert staff_request.reviewed_by == org.hod.id


class TestNotificationFailures:
    @pytest.fixture
    def failing_coordinator(
        self, workflow_service, registration_store, identity_directory, chain_definition,
    ):
        dispatcher = FailingDispatcher()
        coordinator = RegistrationApprovalCoordinator(
            workflow_service,
            registration_store,
            identity_directory,
            dispatcher,
            chain_definition,
        )
        return coordinator, dispatcher

    def test_transition_survives_failed_delivery(
        self, failing_coordinator, staff_request, org, acting, workflow_service, captured_logs,
    ):
        coordinator, dispatcher = failing_coordinator

        wf = coordinator.submit(staff_request.id)
        outcome = coordinator.approve(wf.workflow_id, acting(org.hod))

        assert dispatcher.attempts == 2
        assert workflow_service.get_workflow(wf.workflow_id).status.value == "approved"
        assert outcome.next_step.is_pending

        failures = [r for r in captured_logs() if r["message"] == "notification_failed"]
        assert len(failures) == 2
        assert failures[0]["exc_type"] == "ConnectionError"
