"""Chat message layout for ERP job notifications."""

from typing import Iterable

from core.models.records import ImportLogRecord, ImportRecord, status_text


def compose_message(record: ImportRecord, status: int, logs: Iterable[ImportLogRecord] = ()) -> str:
    """Build the operator message for a job that reached `status`."""
    lines = [
        "*Notificação de Processamento de Job*",
        "",
        f"*ID Job:* {record.job_id}",
        f"*Coligada:* {record.company_code}",
        f"*Equipamento:* {record.device_name}",
        f"*Status:* {status_text(status)}",
    ]

    if record.artifact_url:
        lines.append(f"*Arquivo AFD:* {record.artifact_url}")

    logs = list(logs)
    if logs:
        lines.append("*Logs:*")
        lines.extend(f"- {log.log_name}: {log.location_url}" for log in logs)

    return "\n".join(lines) + "\n"
