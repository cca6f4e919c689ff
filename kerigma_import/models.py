from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field


TipoPessoa = Literal["membro", "visitante", "pastor", "lider"]
Situacao = Literal["ativo", "inativo"]


class PessoaRecord(BaseModel):
    """
    One row of the ``pessoas`` table as the importer writes it.

    Only fields that were explicitly set reach the insert payload, so an
    omitted ``tipo_pessoa``/``situacao`` leaves the column default in charge.
    """

    model_config = ConfigDict(extra="forbid")

    nome_completo: str = Field(min_length=2)
    email: str
    telefone: Optional[str] = None
    tipo_pessoa: Optional[TipoPessoa] = None
    situacao: Optional[Situacao] = None
    estado_espiritual: Optional[str] = None
    data_nascimento: Optional[str] = Field(default=None, examples=["1990-05-10"])
    endereco: Optional[str] = None
    estado_civil: Optional[str] = None
    escolaridade: Optional[str] = None
    observacoes: Optional[str] = None

    def to_insert_payload(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class RowError(BaseModel):
    row: int = Field(ge=0)
    error: str
    data: Optional[str] = None


class ImportResult(BaseModel):
    success: int = 0
    errors: int = 0
    details: List[RowError] = Field(default_factory=list)

    def record_success(self) -> None:
        self.success += 1

    def record_failure(self, row: int, error: str, data: Optional[str] = None) -> None:
        self.errors += 1
        self.details.append(RowError(row=row, error=error, data=data))


class ImportRequest(BaseModel):
    file: Optional[str] = Field(default=None, description="data:<mimetype>;base64,<content>")
    filename: str = ""
    mimetype: str = ""


class ImportErrorEnvelope(BaseModel):
    error: str
    success: int = 0
    errors: int = 1
    details: List[RowError] = Field(default_factory=list)

    @classmethod
    def from_message(cls, message: str) -> "ImportErrorEnvelope":
        return cls(error=message, details=[RowError(row=0, error=message)])


class HealthResponse(BaseModel):
    ok: bool = True
