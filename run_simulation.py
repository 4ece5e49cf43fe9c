"""
Main Execution Script for the OPD Token Allocator.
Runs a simulated OPD day through the allocation engine, prints the final
schedules and exports a JSON snapshot.
"""

import os
import sys
import json
import logging
from typing import List, Optional

# Add current directory to path so imports work
sys.path.append(os.path.dirname(os.path.abspath(__file__)))

from allocator.engine import TokenAllocationEngine
from generators.scenario import Scenario, default_scenario, load_scenario
from models import AllocationOutcome

# --- CONFIGURATION ---
SCENARIO_FILENAME = os.environ.get("OPD_SCENARIO_FILE")  # None = built-in day
EXPORT_FILENAME = os.environ.get("OPD_EXPORT_FILE", "opd_snapshot.json")
LOG_LEVEL = os.environ.get("OPD_LOG_LEVEL", "INFO").upper()
# ---------------------

logger = logging.getLogger("Main")

SOURCE_LABELS = {
    "online": "[ONLINE]",
    "walkin": "[WALKIN]",
    "priority": "[PRIORITY]",
    "followup": "[FOLLOWUP]",
    "emergency": "[EMERGENCY]",
}


class OPDSimulation:
    """
    Drives a Scenario through the engine and keeps a narrative event log.
    """

    def __init__(self, scenario: Scenario, engine: Optional[TokenAllocationEngine] = None):
        self.scenario = scenario
        self.engine = engine or TokenAllocationEngine()
        self.event_log: List[str] = []
        # Token ids in the order they were successfully allocated
        self.allocated_ids: List[str] = []

    def log(self, message: str, kind: str = "INFO") -> None:
        entry = f"{kind}: {message}"
        self.event_log.append(entry)
        logger.info(entry)

    def initialize(self) -> None:
        for provider in self.scenario.providers:
            self.engine.register_provider(provider)
            self.log(f"Added {provider.name} ({provider.specialization})")
        self.log(f"Created {len(self.scenario.patients)} sample patients")

    def _track(self, outcome: AllocationOutcome) -> None:
        if outcome.success and outcome.token is not None:
            self.allocated_ids.append(outcome.token.id)

    def _book(self, booking) -> None:
        outcome = self.engine.allocate(booking.patient_id, booking.provider_id, booking.time, booking.source)
        self._track(outcome)
        self.log(f"{booking.label}: {self.scenario.patient_name(booking.patient_id)} -> {outcome.message}")

    def run_phase(self, phase) -> None:
        self.log(f"Starting {phase.name}", "PHASE")

        for booking in phase.bookings:
            self._book(booking)

        for emergency in phase.emergencies:
            self.log("Emergency patient arrives!")
            outcome = self.engine.insert_emergency(emergency.patient_id, emergency.provider_id, emergency.time)
            self._track(outcome)
            self.log(f"Emergency: {self.scenario.patient_name(emergency.patient_id)} -> {outcome.message}")

        for index in phase.cancellations:
            if index >= len(self.allocated_ids):
                logger.warning(f"No allocated token at index {index}, skipping cancellation")
                continue
            outcome = self.engine.cancel(self.allocated_ids[index])
            name = self.scenario.patient_name(outcome.token.patient_id) if outcome.token else self.allocated_ids[index]
            self.log(f"Cancellation: {name} -> {outcome.message}")

        for booking in phase.late_bookings:
            self._book(booking)

        self.log(f"{phase.name} completed")

    def run(self) -> TokenAllocationEngine:
        self.initialize()
        for phase in self.scenario.phases:
            self.run_phase(phase)
        return self.engine

    def display_results(self) -> None:
        print("\n" + "=" * 80)
        print("📋 FINAL SCHEDULES")
        print("=" * 80)

        for doctor in self.engine.list_providers():
            schedule = self.engine.provider_schedule(doctor["id"])
            print(f"\n{schedule['doctor']['name']} ({schedule['doctor']['specialization']})")
            print("-" * 60)
            for slot in schedule["schedule"]:
                print(f"Time {slot['time']} | Capacity: {slot['allocated']}/{slot['capacity']} | Available: {slot['available']}")
                if not slot["tokens"]:
                    print("   No appointments")
                for token in slot["tokens"]:
                    label = SOURCE_LABELS.get(token["source"], "[UNKNOWN]")
                    print(f"   {label} {self.scenario.patient_name(token['patient_id'])} "
                          f"({token['source']}, Priority: {token['priority']})")

        print("\n" + "=" * 80)
        print("📈 SYSTEM STATISTICS")
        print("=" * 80)
        for key, value in self.engine.system_stats().items():
            print(f"{key.replace('_', ' ').title()}: {value}")

        queue = self.engine.waiting_queue()
        if queue:
            print("\n" + "=" * 80)
            print("⏳ WAITING QUEUE")
            print("=" * 80)
            for position, entry in enumerate(queue, start=1):
                print(f"{position}. {self.scenario.patient_name(entry['patient_id'])} -> {entry['provider_id']} "
                      f"({entry['source']}, Priority: {entry['priority']})")

    def snapshot(self) -> dict:
        """JSON-ready view of the final engine state plus the event log."""
        return {
            "providers": self.engine.list_providers(),
            "schedules": {
                p["id"]: self.engine.provider_schedule(p["id"])["schedule"]
                for p in self.engine.list_providers()
            },
            "stats": self.engine.system_stats(),
            "waiting_queue": self.engine.waiting_queue(),
            "token_sources": self.engine.token_sources(),
            "events": list(self.event_log),
        }


def export_snapshot(simulation: OPDSimulation, filename: str) -> None:
    logger.info(f"💾 Exporting snapshot to {filename}...")
    with open(filename, "w") as f:
        json.dump(simulation.snapshot(), f, indent=2)
    logger.info("✅ Snapshot exported.")


def main():
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler()]
    )

    logger.info("🚀 Starting OPD Token Allocation Simulation...")

    if SCENARIO_FILENAME:
        scenario = load_scenario(SCENARIO_FILENAME)
    else:
        scenario = default_scenario()

    if not scenario.providers:
        logger.error("❌ Scenario has no doctors. Exiting.")
        return 1

    simulation = OPDSimulation(scenario)
    simulation.run()
    simulation.display_results()
    export_snapshot(simulation, EXPORT_FILENAME)

    print("\n✅ Simulation Complete.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
