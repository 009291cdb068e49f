#!/usr/bin/env python3
"""
Seed the starter business type templates.

Every template goes through `upsert_template(create=True)`, so re-running the
script is a no-op for unchanged templates and a single version bump for edited
ones.

Usage:
    python -m bizcore.scripts.seed_business_templates
    python -m bizcore.scripts.seed_business_templates --only HVAC Plumber
"""

import argparse
from typing import Dict, Iterable, List, Optional

from bizcore.paths import logs_root
from bizcore.service import BizCoreService
from bizcore.utils.log import get_logger, setup_logger

logger = get_logger(__name__)

STARTER_TEMPLATES = {
    "HVAC": {
        "inquiryTypes": [
            {"name": "Emergency Service", "description": "No heat or cooling, system failure",
             "keywords": "emergency, no heat, no cooling, not working, broken",
             "pricingHint": "Emergency fee: $150, Labor: $125/hr"},
            {"name": "Maintenance", "description": "Seasonal tune-ups, filter changes, inspections",
             "keywords": "maintenance, tune-up, service, inspection, filter",
             "pricingHint": "Seasonal tune-up: $150"},
            {"name": "Installation", "description": "New system installation or replacement",
             "keywords": "install, new system, replace, upgrade",
             "pricingHint": "Quote required"},
            {"name": "Repair", "description": "Fixing an existing system",
             "keywords": "repair, fix, broken, not cooling, not heating",
             "pricingHint": "Diagnostic: $95, Labor: $125/hr + parts"},
        ],
        "protocolText": "**Emergency Service:** Respond within 2 hours.\n\n"
                        "**Seasonal Maintenance:** Recommend a spring and a fall visit.\n\n"
                        "**Installations:** Quote with rebates and financing options.",
        "specialRules": [
            "Always mention seasonal maintenance programs",
            "Offer financing options for new installations",
            "Mention energy rebates when applicable",
        ],
        "upsellPrompts": [
            "Sign up for our seasonal maintenance program and save 15%",
            "Consider a smart thermostat for better efficiency",
        ],
    },
    "Plumber": {
        "inquiryTypes": [
            {"name": "Emergency Plumbing", "description": "Burst pipes, major leaks, sewage backup",
             "keywords": "emergency, burst, leak, flooding, no water, backup",
             "pricingHint": "Emergency fee: $150, Labor: $125/hr"},
            {"name": "Repairs", "description": "Leaks, clogs, running toilets",
             "keywords": "repair, leak, clog, toilet, faucet, drain",
             "pricingHint": "Service call: $95, Labor: $125/hr"},
            {"name": "Installation", "description": "Fixtures, water heaters, appliances",
             "keywords": "install, new, water heater, fixture, dishwasher",
             "pricingHint": "Quote required"},
            {"name": "Drain Cleaning", "description": "Clogged drains and sewers",
             "keywords": "drain, clog, backup, slow drain, sewer",
             "pricingHint": "Drain cleaning: $150-$300"},
        ],
        "protocolText": "**Emergency Calls:** Respond within 1 hour and advise shutting off the water.\n\n"
                        "**Water Heaters:** Ask the unit age; recommend replacement past 10 years.\n\n"
                        "**Drain Cleaning:** Offer a camera inspection for recurring clogs.",
        "specialRules": [
            "For emergencies, tell the customer how to shut off the water",
            "Recommend water heater replacement if the unit is over 10 years old",
            "Mention the warranty on parts and labor",
        ],
        "upsellPrompts": [
            "Consider a water heater flush to extend its life",
            "We offer annual plumbing inspections to catch issues early",
        ],
    },
    "Electrician": {
        "inquiryTypes": [
            {"name": "Emergency Electrical", "description": "No power, sparking, burning smell",
             "keywords": "emergency, no power, sparking, smoke, breaker",
             "pricingHint": "Emergency fee: $150, Labor: $125/hr"},
            {"name": "Installation & Upgrades", "description": "Panels, circuits, outlets, lighting",
             "keywords": "install, upgrade, panel, circuit, outlet, lighting",
             "pricingHint": "Quote required"},
            {"name": "Troubleshooting", "description": "Diagnosing electrical issues",
             "keywords": "troubleshoot, diagnose, not working, flickering",
             "pricingHint": "Diagnostic fee: $95, Labor: $125/hr"},
        ],
        "protocolText": "**Emergency Calls:** Respond within 1 hour.\n\n"
                        "**Safety Issues:** Advise shutting off power if it is safe to do so.\n\n"
                        "**Permits:** Always mention when a permit is required.",
        "specialRules": [
            "Always ask about permit requirements for installations",
            "Mention the 1 year workmanship warranty",
        ],
        "upsellPrompts": [
            "While we're there, would you like us to inspect your electrical panel?",
        ],
    },
    "Pest Control": {
        "inquiryTypes": [
            {"name": "Emergency Pest Control", "description": "Wasps, rodents, severe infestations",
             "keywords": "emergency, infestation, wasps, hornets, rats, mice",
             "pricingHint": "Emergency service: $150-$250"},
            {"name": "General Pest Control", "description": "Ants, spiders, roaches",
             "keywords": "ants, spiders, roaches, bugs, insects, pests",
             "pricingHint": "Initial treatment: $150-$200"},
            {"name": "Termite Inspection", "description": "Termite inspections and treatments",
             "keywords": "termite, wood damage, inspection, treatment",
             "pricingHint": "Inspection: $100"},
        ],
        "protocolText": "**Emergency:** Same-day response for wasps, hornets or severe infestations.\n\n"
                        "**General Service:** Schedule within 2-3 days.\n\n"
                        "**Termite:** Inspect before quoting a treatment.",
        "specialRules": [
            "Always ask about pets and children before treatment",
            "Promote quarterly plans for ongoing protection",
        ],
        "upsellPrompts": [
            "Sign up for quarterly service and save 20%",
            "Consider a termite inspection for peace of mind",
        ],
    },
    "Locksmith": {
        "inquiryTypes": [
            {"name": "Emergency Lockout", "description": "Locked out of a home, car or business",
             "keywords": "locked out, lockout, emergency, can't get in",
             "pricingHint": "Emergency lockout: $75-$150"},
            {"name": "Rekeying Service", "description": "Rekey or change locks",
             "keywords": "rekey, change locks, new keys, lock change",
             "pricingHint": "Rekey: $25-$35 per lock"},
            {"name": "Security Upgrade", "description": "Deadbolts and smart locks",
             "keywords": "security, deadbolt, smart lock, upgrade",
             "pricingHint": "Installation: $100-$300"},
        ],
        "protocolText": "**Emergency Lockout:** Respond within 30-60 minutes and verify ownership first.\n\n"
                        "**Rekeying:** Schedule same day or next day.",
        "specialRules": [
            "ALWAYS verify ownership before lockout service",
            "Recommend rekeying when moving into a new home",
        ],
        "upsellPrompts": [
            "Consider upgrading to a smart lock for keyless entry",
        ],
    },
}


def seed_templates(service: BizCoreService, templates: Dict[str, dict],
                   only: Optional[Iterable[str]] = None) -> Dict[str, List[str]]:
    """Upsert each template; returns business type names grouped by outcome."""
    selected = list(only) if only else list(templates)
    unknown = [name for name in selected if name not in templates]
    if unknown:
        raise ValueError(f"No starter template for: {', '.join(unknown)}")

    outcome = {"created": [], "updated": [], "unchanged": []}
    for business_type in selected:
        result = service.upsert_template(business_type, templates[business_type], create=True)
        if result.created:
            outcome["created"].append(business_type)
            logger.info(f"   🆕 {business_type}: created at version {result.template.version}")
        elif result.changed:
            outcome["updated"].append(business_type)
            logger.info(f"   📝 {business_type}: version {result.previous_version} -> {result.template.version}")
        else:
            outcome["unchanged"].append(business_type)
            logger.info(f"   ✅ {business_type}: unchanged at version {result.template.version}")
    return outcome


def main(argv=None):
    parser = argparse.ArgumentParser(description="Seed starter business type templates")
    parser.add_argument("--only", nargs="+", help="Only seed these business types")
    args = parser.parse_args(argv)

    setup_logger(logs_root)
    logger.info("🚀 Seeding business type templates...")
    outcome = seed_templates(BizCoreService(), STARTER_TEMPLATES, args.only)

    logger.info("=" * 60)
    logger.info(f"📊 Created: {len(outcome['created'])}, updated: {len(outcome['updated'])}, "
                f"unchanged: {len(outcome['unchanged'])}")
    logger.info("=" * 60)


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        logger.info("🛑 Seeding stopped by user")
    except Exception as e:
        logger.error(f"❌ Seeding failed: {e}")
        raise
