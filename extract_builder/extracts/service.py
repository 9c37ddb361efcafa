# extract_builder/extracts/service.py
"""Service layer for extracts: access checks, transactional saves, execution and export."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence, Tuple

from sqlalchemy.orm.exc import StaleDataError

from extract_builder.catalog.dao import CatalogDAO
from extract_builder.core.config import Settings
from extract_builder.core.exceptions import (
    AccessDenied,
    CompileFailure,
    ExecutionFailure,
    ExtractBuilderError,
    ValidationFailure,
    VersionConflict,
)
from extract_builder.core.retry import with_store_retry
from extract_builder.extracts.compiler import Condition, SelectedColumn, compile_statement
from extract_builder.extracts.criteria import CriteriaStep, finalize_steps
from extract_builder.extracts.dao import ExtractDAO
from extract_builder.extracts.executor import PaginatedExecutor
from extract_builder.extracts.export import XLSX_MEDIA_TYPE, to_delimited_text, to_xlsx_bytes
from extract_builder.extracts.models import Extract, ExtractExecutionLog
from extract_builder.extracts.schemas import (
    CriteriaRowRead,
    CriteriaUpdate,
    CriteriaUpdateResult,
    ExecuteRequest,
    ExecuteResponse,
    ExecutionLogRead,
    ExportRequest,
    ExtractConfigRead,
    ExtractConfigUpdate,
    ExtractCreate,
    ExtractRead,
    ExtractSummary,
    ExtractUpdate,
    SelectedFieldRead,
)

logger = logging.getLogger(__name__)


@dataclass
class ExportFile:
    content: bytes
    media_type: str
    filename: str


def generate_extract_code(lob_prefix: str, sub_lob_prefix: Optional[str], now: Optional[datetime] = None) -> str:
    """``<LOB>-<SUBLOB>-<yymmddHHMMSS>``, or ``<LOB>-<yymmddHHMMSS>`` without a sub-LOB."""
    stamp = (now or datetime.now()).strftime("%y%m%d%H%M%S")
    prefixes = [lob_prefix] + ([sub_lob_prefix] if sub_lob_prefix else [])
    return "-".join(prefixes + [stamp])


class ExtractService:
    """Orchestrates extract definitions over the config store and the warehouse."""

    def __init__(
        self,
        extract_dao: ExtractDAO,
        catalog_dao: CatalogDAO,
        settings: Settings,
        executor: Optional[PaginatedExecutor] = None,
    ):
        self.dao = extract_dao
        self.catalog_dao = catalog_dao
        self.settings = settings
        self.executor = executor

    # ===== READS =====

    async def list_extracts(self, user_id: str, search: Optional[str] = None) -> List[ExtractSummary]:
        """Get extracts visible to the user, newest first."""
        rows = self._with_retry(lambda: self.dao.list_visible(user_id, search), "list extracts")
        return [
            ExtractSummary(
                id=extract.id,
                extract_code=extract.extract_code,
                name=extract.name,
                description=extract.description,
                lob_name=lob_name,
                sub_lob_name=sub_lob_name,
                is_public=extract.is_public,
                created_by=extract.created_by,
                created_at=extract.created_at,
            )
            for extract, lob_name, sub_lob_name in rows
        ]

    async def get_extract(self, extract_id: int, user_id: str) -> ExtractRead:
        extract = self._with_retry(lambda: self._load_visible(extract_id, user_id), "load extract")
        return self._to_read(extract)

    # ===== MUTATIONS =====

    async def create_extract(self, data: ExtractCreate, user_id: str) -> ExtractRead:
        """Create an extract. Its statement stays empty until criteria are first saved."""

        def create() -> Extract:
            try:
                lob = self.catalog_dao.get_line_of_business(data.lob_id)
                if lob is None:
                    raise ValidationFailure(f"Line of business {data.lob_id} does not exist")
                sub_lob_prefix = self._check_sub_lob(data.lob_id, data.sub_lob_id)
                self._require_fields(data.selected_fields)
                steps = finalize_steps(data.criteria_rows)
                self._compile(data.lob_id, data.selected_fields, steps)

                extract = self.dao.add(
                    Extract(
                        extract_code=generate_extract_code(lob.prefix, sub_lob_prefix),
                        name=data.name,
                        description=data.description,
                        lob_id=data.lob_id,
                        sub_lob_id=data.sub_lob_id,
                        created_by=user_id,
                        is_public=data.is_public,
                    )
                )
                self.dao.replace_fields(extract, data.selected_fields)
                self.dao.replace_criteria(extract, steps)
                self.dao.commit()
                return extract
            except Exception:
                self.dao.rollback()
                raise

        extract = self._with_retry(create, "create extract")
        logger.info(f"Created extract {extract.id} ({extract.extract_code})")
        return self._to_read(extract)

    async def update_extract(self, extract_id: int, data: ExtractUpdate, user_id: str) -> ExtractRead:
        """Edit flow: metadata plus optional wholesale field/criteria replacement."""

        def update(extract: Extract) -> None:
            if data.name is not None:
                extract.name = data.name
            if data.description is not None:
                extract.description = data.description
            if data.is_public is not None:
                extract.is_public = data.is_public
            if data.sub_lob_id is not None and data.sub_lob_id != extract.sub_lob_id:
                self._check_sub_lob(extract.lob_id, data.sub_lob_id)
                extract.sub_lob_id = data.sub_lob_id

            if data.selected_fields is None and data.criteria_rows is None:
                return

            field_ids = (
                data.selected_fields
                if data.selected_fields is not None
                else [field.field_id for field in extract.selected_fields]
            )
            steps = finalize_steps(
                data.criteria_rows if data.criteria_rows is not None else self._steps_from(extract)
            )
            self._regenerate(extract, field_ids, steps, replace_fields=data.selected_fields is not None)

        extract = self._mutate(extract_id, user_id, data.version, update, "update extract")
        return self._to_read(extract)

    async def save_criteria(self, extract_id: int, data: CriteriaUpdate, user_id: str) -> CriteriaUpdateResult:
        """Replace the criteria (and fields when given) and regenerate the statement in one transaction."""

        def save(extract: Extract) -> None:
            field_ids = (
                data.selected_fields
                if data.selected_fields is not None
                else [field.field_id for field in extract.selected_fields]
            )
            steps = finalize_steps(data.criteria_rows)
            self._regenerate(extract, field_ids, steps, replace_fields=data.selected_fields is not None)

        extract = self._mutate(extract_id, user_id, data.version, save, "save criteria")
        return CriteriaUpdateResult(success=True, query_statement=extract.query_statement, version=extract.version)

    # ===== EXECUTION =====

    async def execute(self, extract_id: int, request: ExecuteRequest, user_id: str) -> ExecuteResponse:
        """Run one page of the stored statement and record the test run."""
        extract = self._with_retry(lambda: self._load_visible(extract_id, user_id), "load extract")
        if not extract.query_statement:
            raise ExecutionFailure("Query statement not found for this Extract")

        try:
            result = await self.executor.execute(extract.query_statement, request.page, request.page_size)
        except ExtractBuilderError as e:
            self._record_execution(extract.id, user_id, request, success=False, error_message=e.message)
            raise

        self._record_execution(
            extract.id,
            user_id,
            request,
            success=True,
            row_count=len(result.rows),
            total_count=result.total_count,
            execution_time_ms=result.execution_time_ms,
        )
        return ExecuteResponse(
            extract_id=extract.id,
            extract_name=extract.name,
            columns=result.columns,
            rows=result.rows,
            total_count=result.total_count,
            current_page=result.current_page,
            page_size=result.page_size,
            has_more=result.has_more,
        )

    async def get_execution_logs(self, extract_id: int, user_id: str, limit: int = 50) -> List[ExecutionLogRead]:
        self._load_visible(extract_id, user_id)
        return [ExecutionLogRead.model_validate(log) for log in self.dao.get_execution_logs(extract_id, limit)]

    async def export(self, extract_id: int, request: ExportRequest, user_id: str) -> ExportFile:
        """Serialize the whole row-ceiling sample as delimited text or XLSX."""
        extract = self._load_visible(extract_id, user_id)
        if not extract.query_statement:
            raise ExecutionFailure("Query statement not found for this Extract")

        config = self.dao.get_config(extract.id)
        file_format = request.file_format
        if file_format is None and config is not None and config.file_format_id is not None:
            fmt = self.catalog_dao.get_file_format(config.file_format_id)
            file_format = fmt.format_name if fmt else None

        result = await self.executor.execute(extract.query_statement, 1, self.settings.sample_row_ceiling)

        if file_format and file_format.upper() == "XLSX":
            content = to_xlsx_bytes(result.columns, result.rows, sheet_name=extract.name)
            return ExportFile(content, XLSX_MEDIA_TYPE, f"{extract.extract_code}.xlsx")

        delimiter = self._resolve_delimiter(request, config)
        extension = "csv" if delimiter == "," else "txt"
        text = to_delimited_text(result.columns, result.rows, delimiter)
        return ExportFile(text.encode("utf-8"), "text/plain; charset=utf-8", f"{extract.extract_code}.{extension}")

    # ===== CONFIG =====

    async def get_config(self, extract_id: int, user_id: str) -> ExtractConfigRead:
        self._load_visible(extract_id, user_id)
        config = self.dao.get_config(extract_id)
        if config is None:
            return ExtractConfigRead(extract_id=extract_id)
        return ExtractConfigRead.model_validate(config)

    async def save_config(self, extract_id: int, data: ExtractConfigUpdate, user_id: str) -> ExtractConfigRead:
        """Insert or update the delivery configuration of an extract."""

        def save():
            try:
                self._load_visible(extract_id, user_id)
                self._check_config_references(data)
                config = self.dao.upsert_config(extract_id, data.model_dump())
                self.dao.commit()
                return config
            except Exception:
                self.dao.rollback()
                raise

        config = self._with_retry(save, "save extract config")
        return ExtractConfigRead.model_validate(config)

    # ===== HELPERS =====

    def _with_retry(self, operation, label: str):
        return with_store_retry(operation, attempts=self.settings.store_retry_attempts, label=label)

    def _load_visible(self, extract_id: int, user_id: str) -> Extract:
        extract = self.dao.get_visible(extract_id, user_id)
        if extract is None:
            raise AccessDenied()
        return extract

    def _mutate(self, extract_id: int, user_id: str, version: Optional[int], change, label: str) -> Extract:
        """Load, version-check and change an extract, committing all or nothing."""

        def run() -> Extract:
            try:
                extract = self._load_visible(extract_id, user_id)
                if version is not None and version != extract.version:
                    raise VersionConflict(
                        f"Extract {extract_id} is at version {extract.version}, not {version}; reload and retry"
                    )
                change(extract)
                extract.updated_at = datetime.now()
                self.dao.commit()
                return extract
            except StaleDataError as e:
                self.dao.rollback()
                raise VersionConflict(f"Extract {extract_id} was modified concurrently; reload and retry") from e
            except Exception:
                self.dao.rollback()
                raise

        extract = self._with_retry(run, label)
        logger.info(f"{label}: extract {extract.id} now at version {extract.version}")
        return extract

    def _regenerate(self, extract: Extract, field_ids: Sequence[int], steps: List[CriteriaStep], replace_fields: bool) -> None:
        self._require_fields(field_ids)
        statement = self._compile(extract.lob_id, field_ids, steps)
        if replace_fields:
            self.dao.replace_fields(extract, field_ids)
        self.dao.replace_criteria(extract, steps)
        extract.query_statement = statement

    def _require_fields(self, field_ids: Sequence[int]) -> None:
        if not field_ids:
            raise ValidationFailure("Select at least one output field")
        if len(set(field_ids)) != len(field_ids):
            raise ValidationFailure("Output fields must not repeat")

    def _check_sub_lob(self, lob_id: int, sub_lob_id: Optional[int]) -> Optional[str]:
        if sub_lob_id is None:
            return None
        sub_lob = self.catalog_dao.get_sub_line_of_business(sub_lob_id)
        if sub_lob is None or sub_lob.lob_id != lob_id:
            raise ValidationFailure(f"Sub-line of business {sub_lob_id} does not belong to line of business {lob_id}")
        return sub_lob.prefix

    def _compile(self, lob_id: int, field_ids: Sequence[int], steps: Sequence[CriteriaStep]) -> str:
        columns, conditions = self._resolve(lob_id, field_ids, steps)
        return compile_statement(
            columns,
            conditions,
            source_sys_id=self.settings.source_sys_id,
            row_ceiling=self.settings.sample_row_ceiling,
        )

    def _resolve(
        self, lob_id: int, field_ids: Sequence[int], steps: Sequence[CriteriaStep]
    ) -> Tuple[List[SelectedColumn], List[Condition]]:
        """Look up every referenced catalog row; dangling ids fail compilation."""
        select_fields = self.catalog_dao.get_select_fields_by_ids(field_ids)
        criteria_fields = self.catalog_dao.get_criteria_fields_by_ids(step.field_id for step in steps)
        operators = self.catalog_dao.get_operators_by_ids(step.operator_id for step in steps)

        columns = []
        for field_id in field_ids:
            field = select_fields.get(field_id)
            if field is None:
                raise CompileFailure(f"Selected field {field_id} no longer exists")
            if field.lob_id != lob_id:
                raise ValidationFailure(f"Selected field {field_id} does not belong to line of business {lob_id}")
            columns.append(SelectedColumn(column=field.field_name, alias=field.display_name))

        conditions = []
        for step in steps:
            field = criteria_fields.get(step.field_id)
            if field is None:
                raise CompileFailure(f"Criteria field {step.field_id} no longer exists")
            operator = operators.get(step.operator_id)
            if operator is None:
                raise CompileFailure(f"Operator {step.operator_id} no longer exists")
            if field.lob_id != lob_id:
                raise ValidationFailure(f"Criteria field {step.field_id} does not belong to line of business {lob_id}")
            if operator.field_type.upper() != field.field_type.upper():
                raise ValidationFailure(
                    f"Operator {operator.operator_symbol!r} does not apply to {field.field_type} field {field.display_name!r}"
                )
            conditions.append(
                Condition(
                    column=field.field_name,
                    operator=operator.operator_symbol,
                    value=step.value,
                    field_type=field.field_type,
                    connector=step.connector.value if step.connector else None,
                )
            )
        return columns, conditions

    def _steps_from(self, extract: Extract) -> List[CriteriaStep]:
        return [
            CriteriaStep(
                field_id=row.field_id,
                operator_id=row.operator_id,
                value=row.value,
                connector=group.connector,
                order=group.group_order,
            )
            for group in extract.criteria_groups
            for row in group.rows
        ]

    def _check_config_references(self, data: ExtractConfigUpdate) -> None:
        checks = (
            (data.file_format_id, self.catalog_dao.file_formats, "File format"),
            (data.file_delimiter_id, self.catalog_dao.file_delimiters, "File delimiter"),
            (data.schedule_parameter_id, self.catalog_dao.schedule_parameters, "Schedule parameter"),
            (data.sftp_server_id, self.catalog_dao.sftp_servers, "SFTP server"),
        )
        for ref_id, dao, label in checks:
            if ref_id is not None and dao.get_by_id(ref_id) is None:
                raise ValidationFailure(f"{label} {ref_id} does not exist")

    def _resolve_delimiter(self, request: ExportRequest, config) -> str:
        if request.delimiter:
            return request.delimiter
        delimiter_id = request.delimiter_id
        if delimiter_id is None and config is not None:
            delimiter_id = config.file_delimiter_id
        if delimiter_id is None:
            return ","
        delimiter = self.catalog_dao.get_file_delimiter(delimiter_id)
        if delimiter is None:
            raise ValidationFailure(f"File delimiter {delimiter_id} does not exist")
        return delimiter.delimiter_value

    def _record_execution(self, extract_id: int, user_id: str, request: ExecuteRequest, **outcome) -> None:
        self.dao.add_execution_log(
            ExtractExecutionLog(
                extract_id=extract_id,
                executed_by=user_id,
                page=request.page,
                page_size=request.page_size,
                **outcome,
            )
        )

    def _to_read(self, extract: Extract) -> ExtractRead:
        criteria_rows = [
            CriteriaRowRead(
                group_order=group.group_order,
                row_order=row.row_order,
                field_id=row.field_id,
                operator_id=row.operator_id,
                value=row.value,
                connector=group.connector,
            )
            for group in extract.criteria_groups
            for row in group.rows
        ]
        return ExtractRead(
            id=extract.id,
            extract_code=extract.extract_code,
            name=extract.name,
            description=extract.description,
            is_public=extract.is_public,
            lob_id=extract.lob_id,
            sub_lob_id=extract.sub_lob_id,
            created_by=extract.created_by,
            created_at=extract.created_at,
            updated_at=extract.updated_at,
            query_statement=extract.query_statement,
            version=extract.version,
            selected_fields=[SelectedFieldRead.model_validate(field) for field in extract.selected_fields],
            criteria_rows=criteria_rows,
        )
