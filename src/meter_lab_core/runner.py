"""
meter-lab-core CLI Runner

Minimal CLI for running one recognition batch with the core pipeline.

Usage:
    python -m meter_lab_core.runner --layers layers.json --manifest photos.json
    python -m meter_lab_core.runner --layers layers.json --manifest photos.json --meter-type gas --model-config itron-g4

A/B against the universal-only baseline:
    python -m meter_lab_core.runner --layers layers.json --manifest photos.json --meter-type gas --ab

Collect the photos in a folder, test it and report promotion eligibility:
    python -m meter_lab_core.runner --layers layers.json --manifest photos.json --meter-type gas --folder "Itron G4"

Check the first photo against existing reference models:
    python -m meter_lab_core.runner --layers layers.json --manifest photos.json --references refs.json
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import datetime
from functools import partial
from pathlib import Path

import pandas as pd
from dotenv import load_dotenv

from meter_lab_core.config_composer import EffectiveConfig, compose
from meter_lab_core.domain.entities import Folder, Photo
from meter_lab_core.domain.errors import InsufficientSamplesError
from meter_lab_core.domain.value_objects import Stats
from meter_lab_core.fingerprint import find_near_duplicates, register_photo
from meter_lab_core.infrastructure.image_source import ImageSource
from meter_lab_core.infrastructure.store import InMemoryExperimentStore
from meter_lab_core.infrastructure.vision_clients import create_client
from meter_lab_core.lab_config import LabConfig, load_config
from meter_lab_core.layer_loader import load_layers, load_manifest, load_references
from meter_lab_core.use_cases.batch import BatchOrchestrator
from meter_lab_core.use_cases.duplicate_detection import detect_duplicate
from meter_lab_core.use_cases.health_check import run_health_check
from meter_lab_core.use_cases.metrics import runs_to_dataframe, stats_to_dict
from meter_lab_core.use_cases.promotion import PromotionGate
from meter_lab_core.use_cases.recognition import RecognitionRunner


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="meter-lab-core: Run and score meter-reading recognition experiments",
    )
    parser.add_argument(
        "--layers",
        required=True,
        help="Path to the configuration layers JSON file",
    )
    parser.add_argument(
        "--manifest",
        required=True,
        help="Path to the photo manifest JSON file",
    )
    parser.add_argument(
        "--meter-type",
        default=None,
        help="Meter type selecting the type layer (e.g. gas, water, electricity)",
    )
    parser.add_argument(
        "--model-config",
        default=None,
        help="Id of the model layer to apply",
    )
    parser.add_argument(
        "--universal-only",
        action="store_true",
        help="Ignore the type and model layers",
    )
    parser.add_argument(
        "--ab",
        action="store_true",
        help="Also run the universal-only baseline and compare both configs",
    )
    parser.add_argument(
        "--folder",
        default=None,
        help="Collect the photos in a named folder and report promotion eligibility",
    )
    parser.add_argument(
        "--references",
        default=None,
        help="Path to a reference models JSON file; the first photo is checked for a duplicate model",
    )
    parser.add_argument(
        "--model",
        default=None,
        help="Vision model name (default: METER_LAB_MODEL from .env)",
    )
    parser.add_argument(
        "--output-dir",
        default="results",
        help="Directory for output files (default: results)",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Show per-run log output",
    )
    return parser.parse_args()


def _print_stats(label: str, stats: Stats) -> None:
    accuracy = "n/a" if stats.accuracy_rate is None else f"{stats.accuracy_rate:.1%}"
    confidence = "n/a" if stats.avg_confidence is None else f"{stats.avg_confidence:.2f}"
    dist = stats.confidence_distribution
    print(f"  [{label}]")
    print(f"    Runs:       {stats.total_runs} (completed {stats.completed_runs}, failed {stats.failed_runs})")
    print(f"    Accuracy:   {accuracy} ({stats.correct_runs}/{stats.evaluated_runs} evaluated)")
    print(f"    Confidence: {confidence} (high {dist.high}, medium {dist.medium}, low {dist.low}, very low {dist.very_low})")
    print(f"    Latency:    {stats.avg_processing_time_ms}ms avg")
    print(f"    Cost:       ${stats.total_cost_usd:.4f}")
    print()


def _load_photos(
    manifest_path: str,
    store,
    image_source: ImageSource,
    config: LabConfig,
    folder_id: str | None = None,
) -> list[Photo]:
    photos = []
    for entry in load_manifest(manifest_path):
        data = image_source.try_fetch(entry.image_ref)
        if data is None:
            print(f"  SKIP (unreadable): {entry.image_ref}")
            continue
        photo, created = register_photo(
            store, data, entry.image_ref,
            folder_id=folder_id,
            ground_truth=entry.ground_truth,
            dedup=config.recognition.dedup_uploads,
        )
        if not created:
            print(f"  SKIP (duplicate of {photo.image_ref}): {entry.image_ref}")
            continue
        if photo.perceptual_hash:
            near = find_near_duplicates(
                photo.perceptual_hash,
                [p for p in photos if p.id != photo.id],
                config.duplicate.phash_max_distance,
            )
            if near:
                match, distance = near[0]
                print(f"  NOTE (near-duplicate of {match.image_ref}, distance {distance}): {entry.image_ref}")
        photos.append(photo)
    return photos


def _print_promotion(gate: PromotionGate, folder: Folder) -> None:
    folder = gate.store.get_folder(folder.id)
    eligibility = gate.can_promote(folder.id)
    print("=== Promotion ===\n")
    print(f"  Folder:        {folder.name} ({folder.status.value})")
    print(f"  Photos:        {eligibility.photo_count}/{folder.min_photos_required}")
    print(f"  Best accuracy: {eligibility.best_accuracy:.1%} (min {gate.min_accuracy:.0%})")
    if eligibility.can_promote:
        print("  Can promote:   yes")
    else:
        print(f"  Can promote:   no ({', '.join(eligibility.unmet_conditions)})")
    print()


def main() -> None:
    load_dotenv()
    args = parse_args()
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Load config
    config = load_config()
    model_name = args.model or config.recognition.model_name
    make_client = partial(create_client, config=config)

    run_id = datetime.now().strftime("%Y%m%d_%H%M%S")
    output_dir = Path(args.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    raw_path = output_dir / f"raw_runs_{run_id}.csv"
    summary_path = output_dir / f"summary_{run_id}.csv"

    # Compose layers
    print(f"\n=== Loading layers: {args.layers} ===\n")
    layers = load_layers(args.layers)
    effective = compose(
        layers.universal,
        layers.type_for(args.meter_type),
        layers.model(args.model_config),
        universal_only=args.universal_only,
    )
    print(f"  Config:      {effective.config_id}")
    print(f"  Prompt:      {len(effective.prompt)} chars")
    preprocess = effective.preprocessing_spec()
    steps = ", ".join(f"{name}={value}" for name, value in preprocess.transforms()) or "none"
    print(f"  Preprocess:  {steps}{'' if preprocess.differs_from_defaults() else ' (defaults)'}")
    print(f"  Multi-pass:  {effective.multi_pass_count}")
    print(f"  Model:       {model_name}")
    print()

    # Register photos
    print(f"=== Loading manifest: {args.manifest} ===\n")
    store = InMemoryExperimentStore()
    image_source = ImageSource(timeout_seconds=config.isolation.timeout_seconds)
    folder = None
    if args.folder:
        folder = store.save_folder(Folder(name=args.folder, min_photos_required=config.policy.min_photos_required))
    photos = _load_photos(args.manifest, store, image_source, config, folder.id if folder else None)
    print(f"  Photos: {len(photos)}\n")
    if not photos:
        print("ERROR: No usable photos. Exiting.")
        sys.exit(1)

    # Step 1: Health check
    available_models, _ = run_health_check([model_name], make_client)
    if not available_models:
        print("ERROR: Vision model unavailable. Exiting.")
        sys.exit(1)

    runner = RecognitionRunner(
        make_client(model_name),
        image_source,
        primary_field=config.recognition.primary_field,
        max_tokens=config.recognition.max_tokens,
    )
    orchestrator = BatchOrchestrator(store, runner, ab_threshold=config.policy.ab_materiality_threshold)

    # Step 2: Run batches
    configs: list[tuple[str, EffectiveConfig]] = []
    if args.ab and not args.universal_only:
        baseline = compose(layers.universal, universal_only=True)
        store.set_baseline_config(baseline.config_id)
        configs.append(("baseline", baseline))
    configs.append(("candidate", effective))

    gate = PromotionGate(store, min_accuracy=config.policy.promotion_min_accuracy)
    testing_folder_id = None
    if folder is not None:
        try:
            testing_folder_id = gate.start_testing(folder.id).id
        except InsufficientSamplesError as e:
            print(f"WARNING: Folder '{folder.name}' not tested: {e}\n")

    for label, cfg in configs:
        print(f"=== Running batch: {label} ({len(photos)} photos) ===\n")
        folder_id = testing_folder_id if label == "candidate" else None
        batch = orchestrator.run_batch(photos, cfg, name=f"{label} {run_id}", folder_id=folder_id)
        print(f"  Batch {batch.id}: {batch.status.value}\n")
        if folder_id is not None:
            gate.complete_testing(folder_id, batch)

    if args.references:
        references = load_references(args.references)
        print(f"=== Duplicate-model check: {photos[0].image_ref} vs {len(references)} reference(s) ===\n")
        result = detect_duplicate(
            image_source.fetch(photos[0].image_ref),
            references,
            make_client(model_name),
            image_source=image_source,
            batch_size=config.duplicate.batch_size,
            max_tokens=config.duplicate.max_tokens,
        )
        if result.not_applicable:
            print("  Not applicable (no usable reference images)")
        elif result.is_duplicate:
            print(f"  Duplicate of {result.matched_ref.name} ({result.confidence:.0f}%): {result.reason}")
        else:
            print(f"  No duplicate found ({result.batches_checked} batch(es) checked)")
        print()

    # Step 3: Stats
    print("=== Stats ===\n")
    summary_rows = []
    for label, cfg in configs:
        stats = orchestrator.config_stats(cfg.config_id)
        _print_stats(label, stats)
        row = pd.json_normalize(json.loads(json.dumps(stats_to_dict(stats), default=str))).iloc[0].to_dict()
        summary_rows.append({"label": label, "config_id": cfg.config_id, **row})

    if len(configs) == 2:
        comparison = orchestrator.compare(configs[0][1].config_id, configs[1][1].config_id, name=run_id)
        print("=== A/B Comparison ===\n")
        if comparison is None:
            print("  Omitted: both configs need evaluated runs (add ground truth to the manifest)")
        else:
            print(f"  Winner: {comparison.winner}")
            print(f"  {comparison.conclusion}")
        print()

    if folder is not None:
        _print_promotion(gate, folder)

    # Step 4: Save CSV
    runs_df = runs_to_dataframe(store.list_runs())
    runs_df["actual_result"] = runs_df["actual_result"].map(
        lambda v: json.dumps(v, ensure_ascii=False) if v is not None else None
    )
    runs_df.to_csv(raw_path, index=False)
    pd.DataFrame(summary_rows).to_csv(summary_path, index=False)
    image_source.close()

    print("=== Output ===\n")
    print(f"  Raw runs: {raw_path}")
    print(f"  Summary:  {summary_path}")
    print()


if __name__ == "__main__":
    main()
