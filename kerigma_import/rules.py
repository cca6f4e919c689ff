"""
Deterministic import rules.

Static tables the importer normalizes against. Everything here is read-only.
"""

CANONICAL_HEADERS = (
    "nome_completo",
    "email",
    "telefone",
    "tipo_pessoa",
    "situacao",
    "estado_espiritual",
    "data_nascimento",
    "endereco",
    "estado_civil",
    "escolaridade",
    "observacoes",
)

REQUIRED_HEADER = "nome_completo"

# Keys are matched after normalize_text(), see normalize.build_header_lookup.
HEADER_SYNONYMS = {
    # nome completo
    "nome": "nome_completo",
    "nomecompleto": "nome_completo",
    "nome_completo": "nome_completo",
    "nome completo": "nome_completo",
    # email
    "email": "email",
    "e-mail": "email",
    "mail": "email",
    # telefone
    "telefone": "telefone",
    "celular": "telefone",
    "whatsapp": "telefone",
    "telefone1": "telefone",
    # tipo_pessoa
    "tipo": "tipo_pessoa",
    "tipo_pessoa": "tipo_pessoa",
    # situacao
    "situacao": "situacao",
    "situação": "situacao",
    "status": "situacao",
    # estado espiritual
    "estado_espiritual": "estado_espiritual",
    "estado espiritual": "estado_espiritual",
    # data_nascimento
    "data_nascimento": "data_nascimento",
    "data nascimento": "data_nascimento",
    "nascimento": "data_nascimento",
    "dt_nascimento": "data_nascimento",
    "data de nascimento": "data_nascimento",
    # endereco
    "endereco": "endereco",
    "endereço": "endereco",
    "rua": "endereco",
    "logradouro": "endereco",
    # estado civil
    "estado_civil": "estado_civil",
    "estado civil": "estado_civil",
    # escolaridade
    "escolaridade": "escolaridade",
    "nivel_escolar": "escolaridade",
    "nível escolar": "escolaridade",
    # observacoes
    "observacoes": "observacoes",
    "observações": "observacoes",
    "obs": "observacoes",
}

TIPO_PESSOA_SYNONYMS = {
    "membro": ("membro", "membroa", "membra", "membro batizado", "batizado", "membro_batizado"),
    "visitante": ("visitante", "visita", "novo convertido", "novoconvertido", "novo", "convidado"),
    "pastor": ("pastor", "pr", "pr.", "reverendo", "rev"),
    "lider": ("lider", "coordenador", "supervisor"),
}

# Other values are omitted so the column default applies.
SITUACAO_VALUES = ("ativo", "inativo")

DEFAULT_TIPO_PESSOA = "membro"
DEFAULT_ESTADO_ESPIRITUAL = "interessado"
MIN_NAME_LENGTH = 2

CANDIDATE_DELIMITERS = (",", ";", "\t")
DEFAULT_DELIMITER = ","
DELIMITER_SAMPLE_SIZE = 10

PLACEHOLDER_SLUG_MAX = 40
PLACEHOLDER_SLUG_FALLBACK = "pessoa"
PLACEHOLDER_SUFFIX_LENGTH = 8

CSV_EXTENSIONS = (".csv", ".tsv")
CSV_MIMETYPES = ("text/csv", "application/csv", "text/tab-separated-values")
SPREADSHEET_EXTENSIONS = (".xlsx", ".xls")

# User-facing messages (pt-BR, returned verbatim to the caller)
MSG_NAME_REQUIRED = "Nome completo é obrigatório e deve ter pelo menos 2 caracteres"
MSG_EMAIL_GENERATED = "Email ausente/inválido - gerado automaticamente"
MSG_NO_FILE = "Nenhum arquivo fornecido"
MSG_EMPTY_FILE = "Arquivo vazio"
MSG_SPREADSHEET = "Para importação Excel, por favor converta para CSV primeiro"
MSG_UNSUPPORTED = "Formato de arquivo não suportado. Use CSV."
MSG_BAD_BASE64 = "Conteúdo do arquivo inválido: base64 malformado"
MSG_UNDECODABLE = "Não foi possível decodificar o arquivo como texto"
MSG_MISSING_NAME_COLUMN = 'Campo obrigatório "nome_completo" não encontrado no cabeçalho'

# Sample file offered to users who need a starting point; both rows import cleanly.
TEMPLATE_FILENAME = "template_pessoas.csv"
CSV_TEMPLATE = (
    "nome_completo,email,telefone,tipo_pessoa,situacao,estado_espiritual,data_nascimento,"
    "endereco,estado_civil,escolaridade,observacoes\n"
    "João Silva,joao@email.com,(11) 99999-9999,membro,ativo,batizado,1985-05-15,"
    "Rua das Flores 123,casado,ensino_superior_completo,Exemplo de observação\n"
    "Maria Santos,maria@email.com,(11) 88888-8888,visitante,ativo,interessado,1990-10-20,"
    "Av. Principal 456,solteiro,ensino_medio_completo,\n"
)
