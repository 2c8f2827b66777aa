"""
Conversion between CharacterState and the persisted character record
"""

from typing import Any, Dict

from loguru import logger

from .build_state import (
    AbilityBonus, BuildSelection, CharacterState, Features, OptionalPool,
    OptionalProficiencySet, PendingAbilityChoice, Trait
)
from .proficiency_constants import OPTIONAL_PROFICIENCY_TYPES, ORIGINS, PROFICIENCY_TYPES
from .utils.normalization import ABILITIES, find_matching, normalize_ability_name, unique_names
from fastapi_models.persisted_models import (
    PersistedAbilityBonus, PersistedCharacter, PersistedFeatures, PersistedHitPoints,
    PersistedOptionalSet, PersistedPendingChoice, PersistedPool, PersistedSelection,
    PersistedTrait
)


def _pool_to_model(pool: OptionalPool) -> PersistedPool:
    return PersistedPool(allowed=pool.allowed, options=list(pool.options), selected=list(pool.selected))


def _selection_to_model(selection: BuildSelection) -> PersistedSelection:
    return PersistedSelection(name=selection.name, source=selection.source, sub_name=selection.sub_name)


def to_persisted(state: CharacterState) -> Dict[str, Any]:
    """
    Flatten a build state into a JSON-ready record

    Args:
        state: In-memory build state

    Returns:
        Dict with camelCase keys; sets become sorted lists
    """
    record = PersistedCharacter(
        name=state.name,
        ability_scores=dict(state.ability_scores),
        ability_bonuses={
            ability: [PersistedAbilityBonus(value=bonus.value, source=bonus.source) for bonus in bonuses]
            for ability, bonuses in state.ability_bonuses.items()
        },
        pending_ability_choices=[
            PersistedPendingChoice(
                count=choice.count,
                amount=choice.amount,
                from_abilities=list(choice.from_abilities),
                source=choice.source,
                selected=list(choice.selected)
            )
            for choice in state.pending_ability_choices
        ],
        proficiencies={prof_type: list(names) for prof_type, names in state.proficiencies.items()},
        proficiency_sources={
            prof_type: {name: sorted(sources) for name, sources in by_name.items()}
            for prof_type, by_name in state.proficiency_sources.items()
        },
        optional_proficiencies={
            prof_type: PersistedOptionalSet(
                allowed=optional_set.allowed,
                options=list(optional_set.options),
                selected=list(optional_set.selected),
                race=_pool_to_model(optional_set.pools['race']),
                class_pool=_pool_to_model(optional_set.pools['class']),
                background=_pool_to_model(optional_set.pools['background'])
            )
            for prof_type, optional_set in state.optional_proficiencies.items()
        },
        features=PersistedFeatures(
            darkvision=state.features.darkvision,
            resistances=sorted(state.features.resistances),
            traits={
                name: PersistedTrait(description=trait.description, source=trait.source)
                for name, trait in state.features.traits.items()
            }
        ),
        race=_selection_to_model(state.race),
        character_class=_selection_to_model(state.character_class),
        background=_selection_to_model(state.background),
        size=state.size,
        speed=dict(state.speed),
        hit_points=PersistedHitPoints(**state.hit_points),
        hit_die=state.hit_die,
        allowed_sources=sorted(state.allowed_sources)
    )
    return record.model_dump(mode='json', by_alias=True)


def _pool_from_model(model: PersistedPool, prof_type: str, origin: str) -> OptionalPool:
    options = unique_names(model.options)
    selected = []
    for name in model.selected:
        option = find_matching(options, name)
        if option is None or len(selected) >= model.allowed or find_matching(selected, name):
            logger.warning(f"Dropping invalid persisted {origin} {prof_type} selection '{name}'")
            continue
        selected.append(option)
    return OptionalPool(allowed=model.allowed, options=options, selected=selected)


def from_persisted(data: Dict[str, Any]) -> CharacterState:
    """
    Rebuild a build state from a persisted record

    Entries that would break the ledger or pool invariants are dropped with a warning.

    Args:
        data: Record produced by to_persisted (camelCase or field names)

    Returns:
        CharacterState

    Raises:
        pydantic.ValidationError: If the record does not have the persisted shape
    """
    record = PersistedCharacter.model_validate(data)
    state = CharacterState(name=record.name)

    for ability, score in record.ability_scores.items():
        canonical = normalize_ability_name(ability)
        if canonical:
            state.ability_scores[canonical] = score

    for ability, bonuses in record.ability_bonuses.items():
        canonical = normalize_ability_name(ability)
        if canonical is None:
            logger.warning(f"Dropping bonuses for unknown ability '{ability}'")
            continue
        ledger = state.ability_bonuses.setdefault(canonical, [])
        for bonus in bonuses:
            existing = next((entry for entry in ledger if entry.source == bonus.source), None)
            if existing:
                existing.value = bonus.value
            else:
                ledger.append(AbilityBonus(value=bonus.value, source=bonus.source))

    for choice in record.pending_ability_choices:
        from_abilities = [a for a in (normalize_ability_name(x) for x in choice.from_abilities) if a]
        state.pending_ability_choices.append(PendingAbilityChoice(
            count=choice.count,
            amount=choice.amount,
            from_abilities=from_abilities or list(ABILITIES),
            source=choice.source,
            selected=[a for a in (normalize_ability_name(x) for x in choice.selected) if a]
        ))

    for prof_type in set(PROFICIENCY_TYPES) | set(record.proficiencies) | set(record.proficiency_sources):
        sources_by_name = record.proficiency_sources.get(prof_type, {})
        granted = []
        sources = {}
        for name in record.proficiencies.get(prof_type, []):
            tags = set(sources_by_name.get(name, []))
            if not tags:
                logger.warning(f"Dropping {prof_type} '{name}' with no source")
                continue
            if find_matching(granted, name):
                continue
            granted.append(name)
            sources[name] = tags
        state.proficiencies[prof_type] = granted
        state.proficiency_sources[prof_type] = sources

    for prof_type in OPTIONAL_PROFICIENCY_TYPES:
        model = record.optional_proficiencies.get(prof_type)
        if model is None:
            continue
        optional_set = OptionalProficiencySet()
        optional_set.pools = {
            'race': _pool_from_model(model.race, prof_type, 'race'),
            'class': _pool_from_model(model.class_pool, prof_type, 'class'),
            'background': _pool_from_model(model.background, prof_type, 'background'),
        }
        # Combined view is derived
        optional_set.allowed = sum(optional_set.pools[o].allowed for o in ORIGINS)
        optional_set.options = unique_names(n for o in ORIGINS for n in optional_set.pools[o].options)
        optional_set.selected = unique_names(n for o in ORIGINS for n in optional_set.pools[o].selected)
        state.optional_proficiencies[prof_type] = optional_set

    state.features = Features(
        darkvision=record.features.darkvision,
        resistances=set(record.features.resistances),
        traits={
            name: Trait(description=trait.description, source=trait.source)
            for name, trait in record.features.traits.items()
        }
    )
    state.race = BuildSelection(record.race.name, record.race.source, record.race.sub_name)
    state.character_class = BuildSelection(
        record.character_class.name, record.character_class.source, record.character_class.sub_name
    )
    state.background = BuildSelection(
        record.background.name, record.background.source, record.background.sub_name
    )
    state.size = record.size
    state.speed = dict(record.speed)
    state.hit_points = record.hit_points.model_dump()
    state.hit_die = record.hit_die
    state.allowed_sources = {source.upper() for source in record.allowed_sources}
    return state
