"""DialogContinuation: one multi-turn command slot per user."""

from typing import Protocol

from ..locks import KeyedLock
from ..logging_config import get_logger
from ..models import DialogState
from ..storage import IDialogueStateStore

logger = get_logger(__name__)


class IDialogContinuation(Protocol):
    """Per-user dialog slot."""

    async def try_begin(
        self,
        user_id: int,
        command: str,
        origin_message_id: int | None,
        chat_id: int,
    ) -> DialogState | None:
        """Open a dialog; None if the user already has one."""
        ...

    async def find(self, user_id: int) -> DialogState | None:
        """Current dialog of the user, if any."""
        ...

    async def add_to_data(self, state: DialogState, value: str) -> DialogState:
        """Append a collected value."""
        ...

    async def attach_message(self, state: DialogState, message_id: int) -> DialogState:
        """Remember a message to delete when the dialog ends."""
        ...

    async def end(self, user_id: int, command: str, ending_message_id: int | None) -> None:
        """Close the user's dialog."""
        ...


class DialogContinuation:
    """Dialog slots cached in memory and written through to storage.

    Operations on one user id are serialized; other users are unaffected.
    A slot missing from storage (lost or never written) reads as "no
    dialog", so the user can simply start the command again.
    """

    def __init__(self, storage: IDialogueStateStore):
        self._storage = storage
        self._states: dict[int, DialogState] = {}
        self._locks = KeyedLock()

    async def try_begin(
        self,
        user_id: int,
        command: str,
        origin_message_id: int | None,
        chat_id: int,
    ) -> DialogState | None:
        """Open a dialog; None if the user already has one."""
        async with self._locks.hold(user_id):
            if await self._load(user_id) is not None:
                return None

            state = DialogState(
                user_id=user_id,
                continuation_state=command,
                chat_id=chat_id,
                origin_message_id=origin_message_id,
            )
            await self._storage.save_dialogue_state(state)
            self._states[user_id] = state
            logger.debug("Dialog %s started for user %s", command, user_id)
            return state

    async def find(self, user_id: int) -> DialogState | None:
        """Current dialog of the user, if any."""
        async with self._locks.hold(user_id):
            return await self._load(user_id)

    async def add_to_data(self, state: DialogState, value: str) -> DialogState:
        """Append a collected value."""
        async with self._locks.hold(state.user_id):
            state.add_to_data(value)
            await self._save(state)
            return state

    async def attach_message(self, state: DialogState, message_id: int) -> DialogState:
        """Remember a message to delete when the dialog ends."""
        async with self._locks.hold(state.user_id):
            state.attach_message(message_id)
            await self._save(state)
            return state

    async def end(self, user_id: int, command: str, ending_message_id: int | None) -> None:
        """Close the user's dialog."""
        async with self._locks.hold(user_id):
            current = await self._load(user_id)
            if current is not None and current.continuation_state != command:
                logger.warning(
                    "Ending dialog %s for user %s while %s is active",
                    command,
                    user_id,
                    current.continuation_state,
                )
            self._states.pop(user_id, None)
            await self._storage.delete_dialogue_state(user_id)
            logger.debug(
                "Dialog %s ended for user %s by message %s",
                command,
                user_id,
                ending_message_id,
            )

    def forget_all(self) -> None:
        """Drop the in-memory cache; storage stays the source of truth."""
        self._states.clear()

    async def _load(self, user_id: int) -> DialogState | None:
        state = self._states.get(user_id)
        if state is None:
            state = await self._storage.get_dialogue_state(user_id)
            if state is not None:
                self._states[user_id] = state
        return state

    async def _save(self, state: DialogState) -> None:
        # Writing a slot that was ended meanwhile would resurrect it.
        if self._states.get(state.user_id) is not state:
            logger.warning("Dropping update of a closed dialog for user %s", state.user_id)
            return
        await self._storage.save_dialogue_state(state)
