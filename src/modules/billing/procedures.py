# src/modules/billing/procedures.py
"""Common TUSS procedure codes with suggested prices, used to fill invoice items."""

from typing import Dict, List, Optional

from src.common.exceptions.exceptions import NotFoundException


def _procedure(code: str, description: str, category: str, default_price: float) -> Dict:
    return {"code": code, "description": description, "category": category, "default_price": default_price}


PROCEDURES: List[Dict] = [
    # Consultas
    _procedure("10101012", "Consulta em consultorio", "Consultas", 150.00),
    _procedure("10101020", "Consulta em domicilio", "Consultas", 250.00),
    _procedure("10101039", "Consulta em pronto socorro", "Consultas", 200.00),
    _procedure("10102019", "Consulta de retorno", "Consultas", 100.00),
    # Procedimentos clinicos
    _procedure("20101015", "Curativo pequeno", "Procedimentos", 50.00),
    _procedure("20101023", "Curativo medio", "Procedimentos", 80.00),
    _procedure("20101031", "Curativo grande", "Procedimentos", 120.00),
    _procedure("20102011", "Retirada de pontos", "Procedimentos", 40.00),
    _procedure("20103018", "Injecao intramuscular", "Procedimentos", 30.00),
    _procedure("20103026", "Injecao endovenosa", "Procedimentos", 50.00),
    _procedure("20103034", "Injecao subcutanea", "Procedimentos", 30.00),
    _procedure("20104014", "Nebulizacao", "Procedimentos", 35.00),
    _procedure("20105010", "Verificacao de pressao arterial", "Procedimentos", 15.00),
    _procedure("20105029", "Glicemia capilar", "Procedimentos", 20.00),
    # Pequenas cirurgias
    _procedure("30101018", "Sutura simples", "Pequenas Cirurgias", 150.00),
    _procedure("30101026", "Excisao de lesao de pele", "Pequenas Cirurgias", 300.00),
    _procedure("30101034", "Drenagem de abscesso", "Pequenas Cirurgias", 250.00),
    _procedure("30102014", "Cauterizacao quimica", "Pequenas Cirurgias", 100.00),
    _procedure("30102022", "Crioterapia", "Pequenas Cirurgias", 120.00),
    # Exames laboratoriais
    _procedure("40301010", "Hemograma completo", "Exames", 25.00),
    _procedure("40301028", "Glicemia de jejum", "Exames", 15.00),
    _procedure("40301036", "Colesterol total", "Exames", 20.00),
    _procedure("40301044", "Triglicerides", "Exames", 20.00),
    _procedure("40301052", "Ureia", "Exames", 15.00),
    _procedure("40301060", "Creatinina", "Exames", 15.00),
    _procedure("40301079", "TGO (AST)", "Exames", 18.00),
    _procedure("40301087", "TGP (ALT)", "Exames", 18.00),
    _procedure("40301095", "TSH", "Exames", 35.00),
    _procedure("40301109", "T4 livre", "Exames", 30.00),
    _procedure("40301117", "Urina tipo I (EAS)", "Exames", 15.00),
    _procedure("40301125", "PSA total", "Exames", 45.00),
    _procedure("40301133", "Vitamina D", "Exames", 80.00),
    _procedure("40301141", "Vitamina B12", "Exames", 50.00),
    _procedure("40301150", "Ferritina", "Exames", 40.00),
    # Exames de imagem
    _procedure("40801012", "Raio-X de torax (PA)", "Imagem", 60.00),
    _procedure("40801020", "Raio-X de torax (PA e perfil)", "Imagem", 80.00),
    _procedure("40801039", "Raio-X de coluna cervical", "Imagem", 70.00),
    _procedure("40801047", "Raio-X de coluna lombar", "Imagem", 70.00),
    _procedure("40802018", "Ultrassonografia abdominal", "Imagem", 150.00),
    _procedure("40802026", "Ultrassonografia pelvica", "Imagem", 130.00),
    _procedure("40802034", "Ultrassonografia de tireoide", "Imagem", 120.00),
    _procedure("40802042", "Ultrassonografia de mama", "Imagem", 130.00),
    _procedure("40803014", "Mamografia bilateral", "Imagem", 180.00),
    # Eletrodiagnostico
    _procedure("40901016", "Eletrocardiograma (ECG)", "Cardiologia", 70.00),
    _procedure("40901024", "Ecocardiograma", "Cardiologia", 350.00),
    _procedure("40901032", "Teste ergometrico", "Cardiologia", 280.00),
    _procedure("40901040", "Holter 24 horas", "Cardiologia", 300.00),
    _procedure("40901059", "MAPA 24 horas", "Cardiologia", 280.00),
    # Vacinas
    _procedure("50101018", "Vacina Influenza", "Vacinas", 120.00),
    _procedure("50101026", "Vacina Hepatite B", "Vacinas", 90.00),
    _procedure("50101034", "Vacina Tetano", "Vacinas", 80.00),
    _procedure("50101042", "Vacina Febre Amarela", "Vacinas", 150.00),
    _procedure("50101050", "Vacina HPV", "Vacinas", 450.00),
    # Telemedicina
    _procedure("10101055", "Teleconsulta", "Telemedicina", 130.00),
    _procedure("10101063", "Telemonitoramento", "Telemedicina", 80.00),
]


def find_procedures(search: Optional[str] = None, category: Optional[str] = None) -> List[Dict]:
    procedures = PROCEDURES
    if search:
        needle = search.lower()
        procedures = [p for p in procedures if search in p["code"] or needle in p["description"].lower()]
    if category:
        procedures = [p for p in procedures if p["category"] == category]
    return list(procedures)


def get_procedure(code: str) -> Dict:
    for procedure in PROCEDURES:
        if procedure["code"] == code:
            return procedure
    raise NotFoundException("Procedure not found", "PROCEDURE_NOT_FOUND")


def get_categories() -> List[str]:
    return sorted({p["category"] for p in PROCEDURES})


def group_by_category() -> Dict[str, List[Dict]]:
    grouped: Dict[str, List[Dict]] = {}
    for procedure in PROCEDURES:
        grouped.setdefault(procedure["category"], []).append(procedure)
    return grouped
