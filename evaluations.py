# Tourism Block Evaluation Ledger
# Append-only audit trail: one Evaluation record per satisfaction or
# rule-abiding update, stamped with the id of the transaction that wrote it.
#
#   <evaluationId>                                   → Evaluation JSON
#   \x00doc~evaluation\x00Evaluation\x00<id>\x00      → 0x00
#
# Evaluation ids come from the caller and are expected to be unique. A
# repeated id overwrites the earlier record without complaint.

import json
import logging

from errors import DecodeError, NotFoundError
from models import DOC_TYPE_EVALUATION, Evaluation

log = logging.getLogger("tourism_block.evaluations")

EVALUATION_INDEX = "doc~evaluation"
EVALUATION_SELECTOR = json.dumps({"selector": {"docType": DOC_TYPE_EVALUATION}})
INDEX_VALUE = b"\x00"


class EvaluationLedger:
    """Audit records within one transaction."""

    def __init__(self, ctx):
        self.ctx = ctx

    def record(self, evaluation_id: str, service_id: str, agreement_id: str,
               content_hash: str) -> Evaluation:
        evaluation = Evaluation(
            evaluation_id=evaluation_id,
            service_id=service_id,
            agreement_id=agreement_id,
            tx_id=self.ctx.tx_id,
            hash=content_hash,
        )
        self.ctx.put_state(evaluation_id, json.dumps(evaluation.to_dict()).encode("utf-8"))
        index_key = self.ctx.create_composite_key(
            EVALUATION_INDEX, [evaluation.doc_type, evaluation.evaluation_id]
        )
        self.ctx.put_state(index_key, INDEX_VALUE)
        log.info("EVALUATION RECORDED %s | %s/%s | tx=%s",
                 evaluation_id, service_id, agreement_id, self.ctx.tx_id)
        return evaluation

    def read(self, evaluation_id: str) -> Evaluation:
        data = self.ctx.get_state(evaluation_id)
        if data is None:
            raise NotFoundError(f"the evaluation {evaluation_id} does not exist")
        try:
            raw = json.loads(data)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise DecodeError("evaluation record", f"can not unmarshal: {e}") from e
        evaluation = Evaluation.from_dict(raw)
        if evaluation.doc_type != DOC_TYPE_EVALUATION:
            raise NotFoundError(f"the evaluation {evaluation_id} does not exist")
        return evaluation

    def count(self, page_size: int) -> int:
        """Records fetched by the first page of the Evaluation query.

        This is the page's fetched count, not the number of matching records:
        with more evaluations than page_size it reports page_size.
        """
        _, metadata = self.ctx.get_query_result_with_pagination(
            EVALUATION_SELECTOR, page_size, ""
        )
        return metadata.fetched_records_count
