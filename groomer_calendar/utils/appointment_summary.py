from typing import List, Optional

from groomer_calendar.schemas.appointment import Appointment

def get_pet_names(appointment: Appointment) -> List[str]:
    """
    Unique pet names across the legacy pet field and every service line
    """
    names = []
    if appointment.pets and appointment.pets.name:
        names.append(appointment.pets.name)
    for entry in appointment.appointment_services:
        if entry.pets and entry.pets.name:
            names.append(entry.pets.name)
    return list(dict.fromkeys(names))

def get_pet_breeds(appointment: Appointment) -> List[str]:
    breeds = []
    if appointment.pets and appointment.pets.breed:
        breeds.append(appointment.pets.breed)
    for entry in appointment.appointment_services:
        if entry.pets and entry.pets.breed:
            breeds.append(entry.pets.breed)
    return list(dict.fromkeys(breeds))

def format_pet_label(names: List[str]) -> str:
    if not names:
        return ""
    if len(names) == 1:
        return names[0]
    return f"{names[0]} +{len(names) - 1}"

def get_service_labels(appointment: Appointment) -> List[str]:
    """
    Service names, repeated services collapsed as "Bath x2"
    """
    counts = {}
    for entry in appointment.appointment_services:
        name = entry.services.name if entry.services else None
        if name:
            counts[name] = counts.get(name, 0) + 1
    if not counts and appointment.services and appointment.services.name:
        counts[appointment.services.name] = 1
    return [f"{name} x{count}" if count > 1 else name for name, count in counts.items()]

def get_total_amount(appointment: Appointment) -> Optional[float]:
    """
    Explicit amount wins; otherwise each line's tier price (or base service
    price) plus its add-ons.
    """
    if appointment.amount is not None:
        return appointment.amount
    if not appointment.appointment_services:
        return appointment.services.price if appointment.services else None

    total = 0.0
    for entry in appointment.appointment_services:
        base_price = entry.price_tier_price
        if base_price is None:
            base_price = entry.services.price if entry.services and entry.services.price is not None else 0
        addons_total = sum(addon.price or 0 for addon in entry.appointment_service_addons)
        total += base_price + addons_total
    return total
