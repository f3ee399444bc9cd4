from typing import Any, List, Mapping, Optional, Tuple

from ..models import SLOT_SOURCE_GARDEN, PlantEntry, SlotState
from .logging_helper import LoggingHelper
from .payload_helper import string_field
from .slot_helper import SlotHelper

GARDEN_AREAS = (("garden", "tileObjects"), ("boardwalk", "boardwalkTileObjects"))

read_slot_species = string_field("species", "seedSpecies", "plantSpecies", "cropSpecies", "name")
read_tile_species = string_field("species", "seedSpecies", "plantSpecies", "name")


class GardenHelper:
    """
    Collects planted plants from a world (garden) snapshot.
    Garden tiles carry per-slot mutation lists directly, so these plants never need matching.
    """

    def __init__(self, slot_helper: SlotHelper, logger: LoggingHelper):
        self.slot_helper = slot_helper
        self.logger = logger

    def extract_slot_states(self, tile: Mapping[str, Any]) -> Tuple[List[SlotState], Optional[str]]:
        slots_raw = tile.get("slots") if isinstance(tile.get("slots"), list) else []
        slot_states: List[SlotState] = []
        inferred_species: Optional[str] = None

        for slot in slots_raw:
            if not isinstance(slot, Mapping):
                continue

            if inferred_species is None:
                inferred_species = read_slot_species(slot)

            mutation_names = [value for value in (slot.get("mutations") or []) if isinstance(value, str)]
            slot_state = self.slot_helper.compute_slot_state(mutation_names)
            slot_states.append(self.slot_helper.merge_explicit_progress(slot_state, slot))

        return slot_states, inferred_species

    @staticmethod
    def resolve_plant_name(tile: Mapping[str, Any], inferred_species: Optional[str]) -> str:
        species = read_tile_species(tile) or inferred_species
        if not species:
            return "Unknown Plant"
        return species if "plant" in species.lower() else f"{species} Plant"

    def collect_plants(self, snapshot: Optional[Mapping[str, Any]]) -> List[PlantEntry]:
        plants: List[PlantEntry] = []
        if not isinstance(snapshot, Mapping):
            return plants

        for label, key in GARDEN_AREAS:
            tiles = snapshot.get(key)
            if not isinstance(tiles, Mapping):
                continue

            for tile_id, tile in tiles.items():
                if not isinstance(tile, Mapping) or tile.get("objectType") != "plant":
                    continue

                slot_states, inferred_species = self.extract_slot_states(tile)
                if not slot_states:
                    continue

                dom_counts = self.slot_helper.letter_counts(slot_states)
                dom_bold = self.slot_helper.bold_counts(slot_states)

                plants.append(PlantEntry(
                    name=f"{self.resolve_plant_name(tile, inferred_species)} [{label}:{tile_id}]",
                    fruit_count=len(slot_states),
                    slot_states=slot_states,
                    slot_source=SLOT_SOURCE_GARDEN,
                    dom_mutation_counts=dom_counts,
                    dom_bold_counts=dom_bold,
                    mutations=self.slot_helper.combine_letters(slot_states, dom_counts, dom_bold),
                ))

        self.logger.log(f"Collected {len(plants)} planted plants from garden snapshot.", "DEBUG")
        return plants
