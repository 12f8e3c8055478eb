"""Unit tests for the certificate state machine."""

import re

import pytest

from bootcamp.kernel.errors import AlreadyRequested, InvalidTransition, TerminalState
from bootcamp.kernel.models.certificate import CertificateStatus
from bootcamp.orchestration.certificate_lifecycle import (
    CertificateAction,
    generate_serial,
    next_state,
    valid_actions,
)

S = CertificateStatus
A = CertificateAction


class TestNextState:
    """Tests for the transition table."""

    @pytest.mark.parametrize("state,action,expected", [
        (S.NONE, A.REQUEST, S.REQUESTED),
        (S.REJECTED, A.REQUEST, S.REQUESTED),
        (S.REQUESTED, A.ISSUE, S.ISSUED),
        (S.REQUESTED, A.REJECT, S.REJECTED),
        (S.ISSUED, A.REVOKE, S.REVOKED),
        (S.ISSUED, A.REISSUE, S.ISSUED),
    ])
    def test_allowed_transitions(self, state, action, expected):
        assert next_state(state, action) == expected

    def test_accepts_plain_string_state(self):
        """States read back from SQLite arrive as plain strings."""
        assert next_state("requested", A.ISSUE) == S.ISSUED

    def test_request_while_pending(self):
        with pytest.raises(AlreadyRequested):
            next_state(S.REQUESTED, A.REQUEST)

    @pytest.mark.parametrize("action", [A.REQUEST, A.ISSUE, A.REJECT])
    def test_issued_is_terminal_for_decisions(self, action):
        with pytest.raises(TerminalState):
            next_state(S.ISSUED, action)

    @pytest.mark.parametrize("action", list(CertificateAction))
    def test_revoked_is_terminal(self, action):
        with pytest.raises(TerminalState):
            next_state(S.REVOKED, action)

    @pytest.mark.parametrize("state,action", [
        (S.NONE, A.ISSUE),
        (S.NONE, A.REVOKE),
        (S.REQUESTED, A.REVOKE),
        (S.REQUESTED, A.REISSUE),
        (S.REJECTED, A.ISSUE),
        (S.REJECTED, A.REJECT),
    ])
    def test_invalid_transitions(self, state, action):
        with pytest.raises(InvalidTransition):
            next_state(state, action)

    def test_valid_actions(self):
        assert set(valid_actions(S.ISSUED)) == {A.REVOKE, A.REISSUE}
        assert set(valid_actions(S.REQUESTED)) == {A.ISSUE, A.REJECT}
        assert valid_actions(S.REVOKED) == []


class TestGenerateSerial:
    """Tests for certificate serials."""

    def test_default_prefix_format(self):
        assert re.fullmatch(r"CW-[0-9A-F]{12}", generate_serial())

    def test_custom_prefix(self):
        assert generate_serial("BC").startswith("BC-")

    def test_serials_differ(self):
        assert len({generate_serial() for _ in range(50)}) == 50
