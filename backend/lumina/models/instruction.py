"""
Edit Instruction Models

An EditInstruction is produced fresh for every Director invocation and
discarded once dispatched. It names what changes, enumerates what must stay
pixel-faithful, and carries the literal original materials for restoration.
"""

from typing import Dict, FrozenSet, List, Optional

from pydantic import BaseModel, Field

from lumina.core.exceptions import UnderSpecifiedInstructionError
from lumina.vision.labels import element_within, elements_in


class EditInstruction(BaseModel):
    target_elements: FrozenSet[str] = frozenset()
    preserve_elements: FrozenSet[str] = frozenset()
    restoration_references: Dict[str, str] = Field(default_factory=dict)
    is_conversational_only: bool = False
    text: str = ""
    # Known room elements (composition + original features) the scope was computed against
    room_elements: FrozenSet[str] = frozenset()

    model_config = {"frozen": True}

    @classmethod
    def conversational(cls) -> "EditInstruction":
        return cls(is_conversational_only=True)

    @property
    def covered_elements(self) -> FrozenSet[str]:
        """Room elements touched by the targets, including features describing them."""
        covered = set(self.target_elements)
        for element in self.room_elements:
            if element in self.target_elements or set(elements_in(element)) & self.target_elements:
                covered.add(element)
        return frozenset(covered)

    @property
    def is_room_wide(self) -> bool:
        return bool(self.room_elements) and self.room_elements <= self.covered_elements

    @property
    def change_lines(self) -> List[str]:
        return [
            line for line in self.text.splitlines()
            if line.lstrip().upper().startswith("CHANGE")
        ]

    def ensure_dispatchable(self) -> "EditInstruction":
        """
        Enforce the isolation and restoration invariants before dispatch.

        Raises UnderSpecifiedInstructionError when the instruction could
        regenerate unrelated parts of the room.
        """
        if self.is_conversational_only:
            raise UnderSpecifiedInstructionError("Conversational replies carry no edit to dispatch")
        if not self.text.strip():
            raise UnderSpecifiedInstructionError("Edit instruction text is empty")
        if not self.target_elements:
            raise UnderSpecifiedInstructionError("Edit instruction names no target element")

        overlap = self.target_elements & self.preserve_elements
        if overlap:
            raise UnderSpecifiedInstructionError(
                f"Elements both targeted and preserved: {sorted(overlap)}"
            )
        if not self.is_room_wide and not self.preserve_elements:
            raise UnderSpecifiedInstructionError(
                "Targets cover only part of the room but nothing is listed to preserve"
            )

        preserved = set(self.preserve_elements)
        for feature in self.preserve_elements:
            preserved.update(elements_in(feature))
        for line in self.change_lines:
            conflicting = [
                e for e in elements_in(line)
                if not element_within(e, self.target_elements) and element_within(e, preserved)
            ]
            if conflicting:
                raise UnderSpecifiedInstructionError(
                    f"CHANGE line names preserved elements: {conflicting}"
                )

        lowered = self.text.lower()
        missing = [p for p in self.preserve_elements if p.lower() not in lowered]
        if missing:
            raise UnderSpecifiedInstructionError(
                f"Preserved elements not named in the instruction: {sorted(missing)}"
            )
        for element, material in self.restoration_references.items():
            if material not in self.text:
                raise UnderSpecifiedInstructionError(
                    f"Restoration of {element} does not name the original material '{material}'"
                )
        return self


class DirectorDecision(BaseModel):
    """What the Director tells the user, and the edit to perform (if any)."""
    confirmation_text: str
    instruction: EditInstruction = Field(default_factory=EditInstruction.conversational)

    model_config = {"frozen": True}

    @property
    def edit_instruction(self) -> Optional[EditInstruction]:
        if self.instruction.is_conversational_only:
            return None
        return self.instruction

    @property
    def is_conversational_only(self) -> bool:
        return self.instruction.is_conversational_only
