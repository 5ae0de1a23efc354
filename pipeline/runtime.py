"""Wires settings into analyzer, planner, executor and scheduler."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from config import Settings
from generation import GenerationClient
from generation.llm import BaseLLM, get_llm
from orchestrator import HttpJobBackend, JobPoller, LocalJobBackend
from planning import CoverageModel, GapAnalyzer, RequestPlanner, RoundShuffler, load_catalog
from storage import ContentStore, PersistenceWriter, SqlContentStore
from utils.clock import Clock
from utils.exceptions import ConfigurationError

from .executors import DirectExecutor, JobExecutor, WorkItemExecutor
from .runner import FillPipeline
from .scheduler import SchedulerLoop


logger = logging.getLogger(__name__)

EXECUTORS = ("direct", "local-jobs", "remote-jobs")


@dataclass
class PregenRuntime:
    """Everything a CLI command needs, built once per invocation."""

    settings: Settings
    model: CoverageModel
    store: ContentStore
    analyzer: GapAnalyzer
    clock: Clock
    scheduler: Optional[SchedulerLoop] = None
    executor: Optional[WorkItemExecutor] = None
    client: Optional[GenerationClient] = None

    async def aclose(self) -> None:
        if self.executor is not None:
            await self.executor.aclose()
        if self.client is not None:
            await self.client.aclose()
        self.store.close()


def build_analysis(
    settings: Settings,
    *,
    store: Optional[ContentStore] = None,
    clock: Optional[Clock] = None,
) -> PregenRuntime:
    """Catalog, store and analyzer only; no credentials needed."""
    catalog = load_catalog(settings.pregen.catalog_path)
    model = CoverageModel(catalog, target_per_bucket=settings.pregen.target_per_bucket)
    store = store or SqlContentStore(settings.store.url, echo=settings.store.echo)
    return PregenRuntime(
        settings=settings,
        model=model,
        store=store,
        analyzer=GapAnalyzer(model, store),
        clock=clock or Clock(),
    )


def build_runtime(
    settings: Settings,
    *,
    executor: str = "direct",
    dry_run: bool = False,
    calibrate: bool = False,
    per_run_cap: Optional[int] = None,
    seed: Optional[int] = None,
    llm: Optional[BaseLLM] = None,
    store: Optional[ContentStore] = None,
    clock: Optional[Clock] = None,
) -> PregenRuntime:
    """
    Build the full generation stack

    Raises:
        ConfigurationError: missing credentials or incompatible options
    """
    if executor not in EXECUTORS:
        raise ConfigurationError(f"Unknown executor: {executor}", {"choices": list(EXECUTORS)})
    if per_run_cap is not None and per_run_cap < 1:
        raise ConfigurationError(f"--count must be at least 1, got {per_run_cap}")
    if executor == "remote-jobs":
        if dry_run:
            raise ConfigurationError("--dry-run is not supported with remote jobs")
        settings.require_job_api_credentials()
    elif llm is None:
        settings.require_llm_credentials()

    runtime = build_analysis(settings, store=store, clock=clock)

    if executor == "remote-jobs":
        job_api = settings.job_api
        backend = HttpJobBackend(
            job_api.base_url,
            job_api.session_cookie,
            timeout_s=job_api.request_timeout_s,
        )
        runtime.executor = JobExecutor(_poller(backend, settings, runtime.clock))
    else:
        runtime.client = GenerationClient.from_settings(llm or get_llm(settings=settings.llm), settings.llm)
        writer = PersistenceWriter(runtime.store, dry_run=dry_run)
        pipeline = FillPipeline(
            runtime.client,
            writer,
            runtime.model,
            calibrate=calibrate,
            call_delay_s=settings.pregen.inter_item_delay_s,
            clock=runtime.clock,
        )
        if executor == "local-jobs":
            runtime.executor = JobExecutor(_poller(LocalJobBackend(pipeline), settings, runtime.clock))
        else:
            runtime.executor = DirectExecutor(pipeline)

    pregen = settings.pregen
    runtime.scheduler = SchedulerLoop(
        runtime.analyzer,
        RequestPlanner(per_run_cap if per_run_cap is not None else pregen.per_run_cap),
        runtime.executor,
        clock=runtime.clock,
        inter_item_delay_s=pregen.inter_item_delay_s,
        shuffler=RoundShuffler(seed if seed is not None else pregen.shuffle_seed),
    )
    logger.debug(f"Runtime ready: executor={executor} dry_run={dry_run} calibrate={calibrate}")
    return runtime


def _poller(backend, settings: Settings, clock: Clock) -> JobPoller:
    job_api = settings.job_api
    return JobPoller(
        backend,
        clock,
        poll_interval_s=job_api.poll_interval_s,
        max_poll_interval_s=job_api.max_poll_interval_s,
        backoff_factor=job_api.backoff_factor,
        timeout_s=job_api.job_timeout_s,
    )
