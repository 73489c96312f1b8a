"""
Notes Moderation

Appointment notes are meant for treatment abbreviations (KG, MT, Lymph),
not clinical detail. Clearly medical terms are refused, borderline terms
are accepted but flagged for review.
"""

import re
from typing import NamedTuple, Optional

MAX_NOTES_LENGTH = 200

# Bloqueo duro: términos médicos/diagnósticos (alemán)
BLOCKED_PATTERNS = [
	re.compile(pattern, re.IGNORECASE)
	for pattern in (
		r"diagnos",
		r"befund",
		r"symptom",
		r"schmerz",
		r"entz[üu]nd",
		r"fraktur",
		r"operation",
		r"medikament",
		r"krankheit",
		r"therapiebericht",
		r"anamnese",
		r"pathologi",
		r"r[öo]ntgen",
		r"mrt\b",
		r"ct\b",
		r"tumor",
		r"arthros",
		r"hernie",
		r"prolaps",
		r"degenerat",
		r"fibromyalg",
		r"rheuma",
		r"depression",
		r"allergi",
		r"blutdruck",
		r"diabetes",
	)
]

# Marca suave: puede ser contexto médico o solo una abreviatura
FLAGGED_PATTERNS = [
	re.compile(pattern, re.IGNORECASE)
	for pattern in (
		r"beschwerden",
		r"untersuchung",
		r"behandlung\s+wegen",
		r"arzt",
		r"klinik",
		r"rezept",
	)
]

TOO_LONG_REASON = f"Notiz darf maximal {MAX_NOTES_LENGTH} Zeichen lang sein."
BLOCKED_REASON = (
	"Bitte nur Behandlungskürzel verwenden (z.B. KG, MT, Lymph). "
	"Keine medizinischen Details."
)


class NotesVerdict(NamedTuple):
	allowed: bool
	flagged: bool
	reason: Optional[str] = None


def filter_notes(notes: Optional[str]) -> NotesVerdict:
	"""
	Evalúa una nota libre.

	Args:
		notes: texto de la nota (None o vacío = sin nota)

	Returns:
		NotesVerdict: (allowed, flagged, reason)

	Algoritmo:
		1. Vacío -> permitido
		2. Más de MAX_NOTES_LENGTH caracteres -> rechazado
		3. Algún término bloqueado -> rechazado
		4. Algún término dudoso -> permitido y marcado
	"""
	if not notes or not notes.strip():
		return NotesVerdict(True, False)

	if len(notes) > MAX_NOTES_LENGTH:
		return NotesVerdict(False, False, TOO_LONG_REASON)

	for pattern in BLOCKED_PATTERNS:
		if pattern.search(notes):
			return NotesVerdict(False, False, BLOCKED_REASON)

	for pattern in FLAGGED_PATTERNS:
		if pattern.search(notes):
			return NotesVerdict(True, True)

	return NotesVerdict(True, False)
