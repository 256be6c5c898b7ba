from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional

from ..vehicles.vehicle_models import VehicleRecord
from .tokens import VersionToken


class MutationState(str, Enum):
    PROPOSED = "Proposed"
    ACCEPTED = "Accepted"
    REJECTED = "Rejected"


@dataclass(frozen=True)
class ConcurrencyEnvelope:
    """
    One mutation attempt: the edited snapshot plus the token it was based on.

    ``server_record`` and ``new_token`` are only set when the attempt was
    rejected; they carry what the caller needs to reconcile and resubmit.
    ``committed_record`` and ``committed_token`` are only set when the attempt
    was accepted.
    """

    submitted_record: VehicleRecord
    token: VersionToken
    state: MutationState = MutationState.PROPOSED
    server_record: Optional[VehicleRecord] = None
    new_token: Optional[VersionToken] = None
    committed_record: Optional[VehicleRecord] = None
    committed_token: Optional[VersionToken] = None

    @property
    def has_conflict(self) -> bool:
        return self.state is MutationState.REJECTED

    def accept(self, stored: VehicleRecord, token: VersionToken) -> "ConcurrencyEnvelope":
        if self.state is not MutationState.PROPOSED:
            raise ValueError(f"Cannot accept an envelope in state {self.state.value}")
        return replace(
            self,
            state=MutationState.ACCEPTED,
            committed_record=stored,
            committed_token=token,
        )

    def reject(self, server_record: VehicleRecord, new_token: VersionToken) -> "ConcurrencyEnvelope":
        if self.state is not MutationState.PROPOSED:
            raise ValueError(f"Cannot reject an envelope in state {self.state.value}")
        return replace(
            self,
            state=MutationState.REJECTED,
            server_record=server_record,
            new_token=new_token,
        )

    def resubmission(self, record: VehicleRecord) -> "ConcurrencyEnvelope":
        """New proposal based on the server's token after a rejection."""
        if self.state is not MutationState.REJECTED or self.new_token is None:
            raise ValueError("Only a rejected envelope can be resubmitted")
        return ConcurrencyEnvelope(submitted_record=record, token=self.new_token)
