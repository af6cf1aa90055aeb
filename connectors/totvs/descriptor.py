"""Descriptor for the TOTVS RM `PtoProcImportacaoBatidas` process.

The process is started by posting this structure to the RM REST process
endpoint. Every value not derived from the equipment, the file or the dates
is a fixed acceptance setting of the import.
"""

from datetime import date
from typing import Any, Dict

from core.models.attendance import EquipmentMapping


PROCESS_SERVER_NAME = "PtoProcImportacaoBatidas"
PROCESS_ACTION_NAME = "PtoActionProcImportacaoBatidas"
PROCESS_DISPLAY_NAME = "Importação de Batidas"
CLOCK_LAYOUT_CODE = "001"

# Employee selection filters accepted by the import
RECEIPT_CODES = "DHMOPQST"
SITUATION_CODES = "ADEFILMOPRSTUVWZ"
EMPLOYEE_TYPE_CODES = "ABCDEFIMNOPRSUXZ"


def format_totvs_date(value: date, time_of_day: str = "00:00:00") -> str:
    """TOTVS dates are YYYY-MM-DDTHH:MM:SS."""
    return f"{value.strftime('%Y-%m-%d')}T{time_of_day}"


def _context_params(company_code: int, user: str, **extra) -> Dict[str, Any]:
    params = {
        "$EXERCICIOFISCAL": -1,
        "$CODLOCPRT": -1,
        "$CODTIPOCURSO": 1,
        "$EDUTIPOUSR": "-1",
        "$CODUNIDADEBIB": -1,
        "$CODCOLIGADA": company_code,
        "$RHTIPOUSR": "-1",
        "$CODIGOEXTERNO": "-1",
        "$CODSISTEMA": "A",
        "$CODUSUARIOSERVICO": "",
        "$CODUSUARIO": user,
        "$IDPRJ": -1,
        "$CHAPAFUNCIONARIO": "-1",
    }
    params.update(extra)
    return {"_params": params}


def build_import_descriptor(
    equipment: EquipmentMapping,
    file_path: str,
    reference_date: date,
    system_date: date,
    user: str = "PortalMatriculaInt",
) -> Dict[str, Any]:
    """Build the process descriptor for one terminal file and one day.

    Args:
        equipment: Terminal coordinates (company and collection terminal)
        file_path: Path of the AFD file as the ERP server sees it
        reference_date: Day whose punches are imported
        system_date: Current date, sent as the selection context's system date
        user: ERP user the process runs as
    """
    window = format_totvs_date(reference_date)
    company = equipment.company_code

    return {
        "ActionModule": "A",
        "ActionName": PROCESS_ACTION_NAME,
        "ProcessName": PROCESS_DISPLAY_NAME,
        "ServerName": PROCESS_SERVER_NAME,
        "CodUsuario": user,
        "Context": _context_params(company, user),
        "CodColigada": company,
        "CodigoLayoutRelogio": CLOCK_LAYOUT_CODE,
        "DataInicioImportacao": window,
        "DataFimImportacao": window,
        "AcertaNatureza": "ConsiderandoJornada",
        "ConsideraPerfilCadastrado": True,
        "ConsideraNaturezaFixa": False,
        "ConsideraUltimaLinhaParaImportacao": False,
        "AtualizaUltimoNSRDisposisitovosCarol": False,
        "ExibeInatividadeFuncionario": False,
        "DesabilitarFracionamentoJob": False,
        "FromFracionamentoJob": False,
        "SaveLogInDatabase": True,
        "SaveParamsExecution": False,
        "UseJobMonitor": True,
        "OnlineMode": False,
        "SyncExecution": False,
        "NotifyEmail": False,
        "NotifyFluig": False,
        "PrimaryKeyList": [],
        "PrimaryKeyNames": [],
        "FilePath": file_path,
        "NaturezaFixa": "Saida",
        "TipoImportacao": "Arquivo",
        "TerminalColeta": str(equipment.terminal_code),
        "TempoMinimoEntreBatidas": "00:00",
        "TipoLayout": "None",
        "PriorizaCracha": False,
        "RecalculaAposImportacao": False,
        "ImportarBatidasAPI": False,
        "QuebraSecao": "???????????????",
        "Selecao": {
            "Chapa": [],
            "CodRecebimento": RECEIPT_CODES,
            "CodSituacao": SITUATION_CODES,
            "CodTipo": EMPLOYEE_TYPE_CODES,
            "NaoUsaCodReceb": False,
            "NaoUsaSituacao": False,
            "NaoUsaTipoFunc": False,
            "Contexto": _context_params(
                company, user, **{"$DATASISTEMA": format_totvs_date(system_date)}
            ),
        },
    }
