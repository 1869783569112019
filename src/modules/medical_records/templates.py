# src/modules/medical_records/templates.py
"""Blank content templates offered to the record editor, one per record type."""

from typing import Any, Dict, List, Optional

from src.models.models import RecordType

RECORD_TEMPLATES: Dict[RecordType, Dict[str, Any]] = {
    RecordType.ANAMNESIS: {
        "name": "Anamnese Completa",
        "content": {
            "chiefComplaint": "",
            "historyOfPresentIllness": "",
            "pastMedicalHistory": "",
            "familyHistory": "",
            "socialHistory": "",
            "allergies": [],
            "medications": [],
            "reviewOfSystems": {
                "general": "",
                "cardiovascular": "",
                "respiratory": "",
                "gastrointestinal": "",
                "genitourinary": "",
                "musculoskeletal": "",
                "neurological": "",
                "psychiatric": "",
            },
        },
    },
    RecordType.EVOLUTION: {
        "name": "Evolucao Clinica",
        "content": {
            "subjective": "",
            "objective": "",
            "vitalSigns": {
                "bloodPressure": "",
                "heartRate": None,
                "temperature": None,
                "respiratoryRate": None,
                "oxygenSaturation": None,
                "weight": None,
                "height": None,
            },
            "physicalExamination": "",
            "assessment": "",
            "plan": "",
        },
    },
    RecordType.PRESCRIPTION: {
        "name": "Prescricao Medica",
        "content": {
            "prescriptions": [
                {
                    "medication": "",
                    "dosage": "",
                    "frequency": "",
                    "duration": "",
                    "route": "oral",
                    "instructions": "",
                },
            ],
            "generalInstructions": "",
        },
    },
    RecordType.EXAM_REQUEST: {
        "name": "Solicitacao de Exames",
        "content": {
            "exams": [],
            "clinicalIndication": "",
            "urgency": "routine",
            "observations": "",
        },
    },
    RecordType.CERTIFICATE: {
        "name": "Atestado Medico",
        "content": {
            "certificateType": "medical_leave",
            "startDate": "",
            "endDate": "",
            "daysOff": None,
            "cid": "",
            "description": "",
        },
    },
    RecordType.REFERRAL: {
        "name": "Encaminhamento",
        "content": {
            "specialty": "",
            "reason": "",
            "clinicalSummary": "",
            "urgency": "routine",
            "examsAttached": [],
        },
    },
}


def get_templates(record_type: Optional[RecordType] = None) -> List[Dict[str, Any]]:
    types = [record_type] if record_type is not None else list(RECORD_TEMPLATES)
    return [
        {"name": RECORD_TEMPLATES[t]["name"], "type": t.value, "content": RECORD_TEMPLATES[t]["content"]}
        for t in types
    ]
