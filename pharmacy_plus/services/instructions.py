import asyncio
from typing import AsyncIterator, List, Optional

from pharmacy_plus.models.schemas import DeliveryInstruction, InstructionPriority, Order

DWELL_SECONDS = {
    InstructionPriority.LOW: 3.0,
    InstructionPriority.NORMAL: 5.0,
    InstructionPriority.HIGH: 8.0,
}


class InstructionPlayer:
    """
    Auto-advancing playback of an order's delivery instructions, in the
    order the pharmacy gave them. High priority notes stay up longer.
    Read-only: the player never changes the order.
    """

    def __init__(self, instructions: List[DeliveryInstruction], sleep=asyncio.sleep, loop: bool = False):
        self.instructions = list(instructions)
        self.position = 0
        self.loop = loop
        self._sleep = sleep

    @classmethod
    def for_order(cls, order: Order, **kwargs) -> "InstructionPlayer":
        return cls(order.instructions, **kwargs)

    @staticmethod
    def dwell_seconds(instruction: DeliveryInstruction) -> float:
        return DWELL_SECONDS.get(instruction.priority, DWELL_SECONDS[InstructionPriority.NORMAL])

    @property
    def current(self) -> Optional[DeliveryInstruction]:
        if not self.instructions:
            return None
        return self.instructions[self.position]

    def advance(self) -> Optional[DeliveryInstruction]:
        if not self.instructions:
            return None
        if self.position + 1 < len(self.instructions):
            self.position += 1
        elif self.loop:
            self.position = 0
        else:
            return None
        return self.current

    def rewind(self) -> None:
        self.position = 0

    async def play(self) -> AsyncIterator[DeliveryInstruction]:
        """Yields each instruction, then waits its dwell time before moving on."""
        if not self.instructions:
            return
        self.rewind()
        while True:
            instruction = self.current
            yield instruction
            await self._sleep(self.dwell_seconds(instruction))
            if self.advance() is None:
                break
