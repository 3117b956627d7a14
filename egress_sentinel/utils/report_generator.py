"""
Report Generator.
Produces an Excel session report from engine state and emitted findings.
"""

import io
from datetime import datetime
from typing import Iterable, Optional

import pandas as pd

from egress_sentinel.core.findings import Finding
from egress_sentinel.core.telemetry import EngineState
from egress_sentinel.utils.helpers import feedback_to_dataframe, findings_to_dataframe, top_endpoints


def generate_excel_report(
    state: EngineState,
    findings: Iterable[Finding],
    current_threshold: float,
    model_benchmark: Optional[pd.DataFrame] = None,
) -> bytes:
    findings_df = findings_to_dataframe(findings)
    output = io.BytesIO()

    with pd.ExcelWriter(output, engine="openpyxl") as writer:

        # Sheet 1: Executive Summary
        model = state.model
        summary_data = {
            "Metric": [
                "Report Generated",
                "Engine Runs",
                "Requests in History",
                "Scores in History",
                "Distinct Endpoints",
                "Model Trained On",
                "Current Threshold",
                "Anomaly Findings",
                "Repetition Findings",
                "Identifier Findings",
                "False Positives Reported",
                "False Negatives Reported",
            ],
            "Value": [
                datetime.utcnow().strftime("%Y-%m-%d %H:%M:%S UTC"),
                state.total_runs,
                len(state.requests),
                len(state.anomaly_scores),
                len(state.request_frequency),
                model.reference_size if model is not None else "not trained",
                round(current_threshold, 4),
                int((findings_df["kind"] == "ANOMALY").sum()),
                int((findings_df["kind"] == "REPETITION").sum()),
                int((findings_df["kind"] == "IDENTIFIERS").sum()),
                len(state.feedback.false_positives),
                len(state.feedback.false_negatives),
            ]
        }
        pd.DataFrame(summary_data).to_excel(writer, sheet_name="Executive Summary", index=False)

        # Sheet 2: Findings
        if not findings_df.empty:
            findings_df.to_excel(writer, sheet_name="Findings", index=False)
        else:
            pd.DataFrame({"message": ["No findings in this session"]}).to_excel(
                writer, sheet_name="Findings", index=False)

        # Sheet 3: Feedback
        feedback_df = feedback_to_dataframe(state.feedback)
        if not feedback_df.empty:
            feedback_df.to_excel(writer, sheet_name="Feedback", index=False)

        # Sheet 4: Top Endpoints
        endpoints = top_endpoints(state.request_frequency)
        if endpoints:
            pd.DataFrame(endpoints).to_excel(writer, sheet_name="Top Endpoints", index=False)

        # Sheet 5: Model Benchmark
        if model_benchmark is not None:
            model_benchmark.reset_index().to_excel(writer, sheet_name="Model Benchmark", index=False)

    output.seek(0)
    return output.getvalue()
