#!/usr/bin/env python3
"""
Full Analysis Pipeline

Runs the complete ClusterLab analysis:
1. Load a numeric table
2. Standardize features
3. Scan k with the elbow method
4. Fit the final k-means partition
5. Validate and export results
"""

import argparse
import sys
import json
import logging
from pathlib import Path

import pandas as pd

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

sys.path.insert(0, str(Path(__file__).parent.parent))

from clusterlab import DegenerateColumn, NoFeasibleRestart, elbow_scan, fit_kmeans, standardize, validate
from clusterlab.clustering import analyze_clusters, attach_labels, print_cluster_report
from clusterlab.errors import is_applicable
from clusterlab.preprocessor import constant_columns
from config.project_config import load_config, get_preset


def _fmt(value) -> str:
    return f"{value:.4f}" if is_applicable(value) else "n/a"


def main():
    parser = argparse.ArgumentParser(
        description="Run the ClusterLab clustering and validation pipeline"
    )
    parser.add_argument(
        'input',
        type=Path,
        help='Input CSV file (one record per row)'
    )
    parser.add_argument(
        '--columns',
        nargs='+',
        default=None,
        help='Feature columns to use (default: all numeric columns)'
    )
    parser.add_argument(
        '--n-clusters',
        type=int,
        default=None,
        help='Number of clusters (use the elbow suggestion if not specified)'
    )
    parser.add_argument(
        '--k-range',
        type=int,
        nargs=2,
        default=None,
        metavar=('K_MIN', 'K_MAX'),
        help='Inclusive k range for the elbow scan'
    )
    parser.add_argument(
        '--restarts',
        type=int,
        default=None,
        help='Restarts for the final fit'
    )
    parser.add_argument(
        '--seed',
        type=int,
        default=None,
        help='Random seed'
    )
    parser.add_argument(
        '--workers',
        type=int,
        default=None,
        help='Parallel workers (0 = sequential, -1 = auto)'
    )
    parser.add_argument(
        '--drop-constant',
        action='store_true',
        help='Drop zero-variance columns instead of failing'
    )
    parser.add_argument(
        '--output',
        type=Path,
        default=None,
        help='Output directory for results'
    )
    parser.add_argument(
        '--report',
        action='store_true',
        help='Print detailed cluster profiles'
    )
    parser.add_argument(
        '--config',
        type=Path,
        default=None,
        help='Path to clusterlab.yaml config file'
    )
    parser.add_argument(
        '--preset',
        choices=['quick', 'standard', 'thorough'],
        default=None,
        help='Use a preset configuration instead of a config file'
    )

    args = parser.parse_args()
    config = get_preset(args.preset) if args.preset else load_config(args.config)

    seed = args.seed if args.seed is not None else config.seed
    workers = args.workers if args.workers is not None else config.parallel_workers
    restarts = args.restarts if args.restarts is not None else config.restarts
    k_range = tuple(args.k_range) if args.k_range else config.k_range
    output_dir = args.output or Path(config.output_dir)

    print("\n🔬 ClusterLab Analysis Pipeline")
    print("=" * 50)

    print(f"\n📊 Loading data from {args.input}...")
    if not args.input.exists():
        print(f"❌ Input file not found: {args.input}")
        return 1

    df = pd.read_csv(args.input)
    if args.columns:
        missing = [c for c in args.columns if c not in df.columns]
        if missing:
            print(f"❌ Columns not found: {missing}")
            return 1
        table = df[args.columns]
    else:
        table = df.select_dtypes(include='number')

    if table.isna().any().any():
        print("❌ Table contains missing values; clean it before clustering")
        return 1

    if args.drop_constant:
        dropped = [table.columns[i] for i in constant_columns(table)]
        if dropped:
            print(f"   Dropping constant columns: {dropped}")
            table = table.drop(columns=dropped)

    print(f"   Using {len(table)} records with {table.shape[1]} features")

    try:
        standardized = standardize(table)
    except DegenerateColumn as e:
        print(f"❌ {e}")
        print("   Re-run with --drop-constant to skip it")
        return 1

    print(f"\n📉 Elbow scan over k = {k_range[0]}..{k_range[1]}...")
    try:
        curve = elbow_scan(
            standardized,
            k_range=k_range,
            restarts_per_k=config.elbow_restarts,
            seed=seed,
            max_iter=config.max_iter,
            n_jobs=workers,
            init=config.init,
            progress=workers == 0,
        )
    except ValueError as e:
        print(f"❌ {e}")
        return 1
    for point in curve:
        print(f"   k={point.k:<3d} WCSS={point.wcss:.4f}")

    suggested = curve.suggest_k()
    if args.n_clusters is not None:
        n_clusters = args.n_clusters
    elif config.n_clusters is not None:
        n_clusters = config.n_clusters
    else:
        n_clusters = suggested if suggested is not None else k_range[0]
    print(f"   Suggested k (advisory): {suggested if suggested else 'n/a'}; using k = {n_clusters}")

    print(f"\n🎯 Fitting k-means with k={n_clusters}, {restarts} restarts...")
    try:
        partition = fit_kmeans(
            standardized,
            n_clusters,
            restarts=restarts,
            seed=seed,
            max_iter=config.max_iter,
            n_jobs=workers,
            init=config.init,
        )
    except (ValueError, NoFeasibleRestart) as e:
        print(f"❌ {e}")
        return 1
    print(f"   WCSS: {partition.wcss:.4f} ({partition.restarts_used}/{restarts} restarts usable)")
    print(f"   Cluster sizes: {partition.cluster_sizes()}")

    output_dir.mkdir(parents=True, exist_ok=True)
    labelled = attach_labels(df, partition, column=config.label_column)
    labelled.to_csv(output_dir / 'labels.csv', index=False)
    curve.to_frame().to_csv(output_dir / 'elbow.csv', index=False)
    print(f"\n💾 Saved labels and elbow curve to {output_dir}")

    if config.validate:
        print("\n✅ Validating partition...")
        report = validate(
            standardized,
            partition,
            block_size=config.distance_block_size,
            n_jobs=workers,
        )
        print(f"   Between/total SS: {_fmt(report.between_total_ratio)}")
        print(f"   Average silhouette: {_fmt(report.avg_silhouette)}")
        print(f"   Dunn index: {_fmt(report.dunn)}")
        print(f"   Calinski-Harabasz: {_fmt(report.calinski_harabasz)}")
        print(f"   Within/between distance ratio: {_fmt(report.wb_ratio)}")

        with open(output_dir / 'validity.json', 'w') as f:
            json.dump(report.to_dict(), f, indent=2)

    if args.report:
        summaries = analyze_clusters(partition, table, standardized=standardized.values)
        print_cluster_report(summaries)

    print("\n🎉 Analysis complete!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
