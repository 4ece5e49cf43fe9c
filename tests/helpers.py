from models import Provider


def make_provider(provider_id="DOC1", start=9, end=11, name="Dr. Test", specialization="General"):
    return Provider(
        id=provider_id,
        name=name,
        specialization=specialization,
        working_hours_start=start,
        working_hours_end=end,
    )


def fill_slot(engine, provider_id, slot_time, source, count=10, prefix="F"):
    """Allocate `count` tokens to one slot and return their ids."""
    ids = []
    for i in range(count):
        outcome = engine.allocate(f"{prefix}{slot_time}-{i}", provider_id, slot_time, source)
        assert outcome.success and outcome.slot_time == slot_time
        ids.append(outcome.token.id)
    return ids
