"""The closed set of case mutation commands.

A command is the validated, frozen input model of one operation. Adding an
operation means adding its input here and a handler entry in
``case_mutation_service._HANDLERS``; the import-time check there fails when
the two drift apart.
"""

from typing import Union, get_args

from darta_chalani.schemas.chalani import (
    AcknowledgeChalaniInput,
    ApproveChalaniInput,
    CloseChalaniInput,
    CreateChalaniInput,
    DirectRegisterChalaniInput,
    DispatchChalaniInput,
    FinalizeChalaniRegistrationInput,
    MarkDeliveredInput,
    MarkInTransitInput,
    MarkReturnedUndeliveredInput,
    ResendChalaniInput,
    ReserveChalaniNumberInput,
    ReviewChalaniInput,
    SealChalaniInput,
    SignChalaniInput,
    SubmitChalaniInput,
    SupersedeChalaniInput,
    VoidChalaniInput,
)
from darta_chalani.schemas.darta import (
    AcceptDartaInput,
    ArchiveDartaInput,
    CloseDartaInput,
    CreateDartaInput,
    DirectRegisterDartaInput,
    EnrichDartaMetadataInput,
    FinalizeDartaRegistrationInput,
    IssueDartaResponseInput,
    MarkDartaActionInput,
    ProvideDartaClarificationInput,
    ReceiveDartaAckInput,
    RequestDartaAckInput,
    RequestDartaClarificationInput,
    ReserveDartaNumberInput,
    ReviewDartaInput,
    RouteDartaInput,
    ScanDartaInput,
    StartSectionReviewInput,
    SubmitDartaInput,
    SupersedeDartaInput,
    VoidDartaInput,
)

ChalaniCommand = Union[
    CreateChalaniInput,
    SubmitChalaniInput,
    ReviewChalaniInput,
    ApproveChalaniInput,
    ReserveChalaniNumberInput,
    FinalizeChalaniRegistrationInput,
    DirectRegisterChalaniInput,
    SignChalaniInput,
    SealChalaniInput,
    DispatchChalaniInput,
    MarkInTransitInput,
    AcknowledgeChalaniInput,
    MarkDeliveredInput,
    MarkReturnedUndeliveredInput,
    ResendChalaniInput,
    VoidChalaniInput,
    SupersedeChalaniInput,
    CloseChalaniInput,
]

DartaCommand = Union[
    CreateDartaInput,
    SubmitDartaInput,
    ReviewDartaInput,
    ReserveDartaNumberInput,
    FinalizeDartaRegistrationInput,
    DirectRegisterDartaInput,
    ScanDartaInput,
    EnrichDartaMetadataInput,
    ArchiveDartaInput,
    RouteDartaInput,
    StartSectionReviewInput,
    RequestDartaClarificationInput,
    ProvideDartaClarificationInput,
    AcceptDartaInput,
    MarkDartaActionInput,
    IssueDartaResponseInput,
    RequestDartaAckInput,
    ReceiveDartaAckInput,
    VoidDartaInput,
    SupersedeDartaInput,
    CloseDartaInput,
]

CaseCommand = Union[ChalaniCommand, DartaCommand]

COMMAND_TYPES: tuple[type, ...] = get_args(ChalaniCommand) + get_args(DartaCommand)
