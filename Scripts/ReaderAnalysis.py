#!/usr/bin env python
# -*- coding: utf-8 -*-

"""
Author: Michael Garancher
Date: 2025-04-12
Description: WEB READER CHANNEL SEGMENTATION REPORT

	1. Data Acquisition: Load the reading events (subscriber, timestamp, channel)
	2. Data Description: Volumes, missing channels, date range and channel shares
	3. Feature Engineering: Reshape events into the subscriber x channel proportion matrix
	4. Subscriber Segmentation: Use KMeans clustering to segment subscribers on their reading profile
	5. Cluster Profiling: Centroids, sizes and dominant channels of each segment
	6. Reporting: Store the report, matrix, assignments, centroids and model

"""

# Import libraries
import sys
from pathlib import Path
import logging
import warnings
import pandas as pd
from ProportionMatrix import load_events, build_proportion_matrix, check_proportion_matrix, summarize_events
from ReaderModeling import KMeansClustering


logger = logging.getLogger(__name__)

# Set pandas options
pd.set_option('display.width', 1000)
pd.set_option('display.max_columns', 999)
pd.set_option('display.float_format', '{:.3f}'.format)

# Set the root directory of the project
ROOT:Path = Path(__file__).resolve().parents[1]

# Set the configuration parameters
CONFIG:dict = {
	'input_file': Path(ROOT).joinpath('Datasets', 'web_reader_events.csv'),
	'output_dirs': {
		'Reports': Path(ROOT).joinpath('Reports'),
		'Models': Path(ROOT).joinpath('Models')
	},
	'columns': {
		'subscriber': 'subscriber_id',
		'timestamp': 'timestamp',
		'category': 'channel'
	},
	'kmeans': {
		'n_clusters': 4,
		'n_init': 25,
		'algorithm': 'lloyd',
		'random_state': 42
	},
	# Set to a range of k to pick n_clusters by silhouette, None keeps kmeans['n_clusters']
	'select_k': None
}



''' HELPER FUNCTIONS '''

def create_percentage_crosstab(df, index_col, column_col, normalize='index'):
	"""Create a crosstab with percentage values"""
	result = pd.crosstab(df[index_col], df[column_col], normalize=normalize) * 100
	return result.round(2)

def section(title:str, out) -> None:
	print("\n" + "#"*(len(title)+4), f"# {title} #", "#"*(len(title)+4), sep="\n", end="\n\n", file=out)



''' 2. DATA DESCRIPTION '''

def describe_events(events:pd.DataFrame, config:dict, out) -> dict:
	cols = config['columns']
	summary = summarize_events(events, cols['subscriber'], cols['timestamp'], cols['category'])
	section('DATASET DESCRIPTION', out)
	print(
		f"## Total number of events: {summary['n_events']}",
		f"## Subscribers: {summary['n_subscribers']}",
		f"## Channels: {summary['n_channels']}",
		f"## Events with missing channel: {summary['n_missing_channel']} ({summary['missing_channel_pct']}%)",
		f"## Subscribers without any channel (excluded): {summary['n_dropped_subscribers']}",
		f"## Date range: {summary['first_event']} -> {summary['last_event']}",
		f"## Channel share of events (%):\n{summary['channel_share_pct'].to_string()}",
		sep='\n\n', end='\n\n', flush=True, file=out
	)
	return summary



''' 3. FEATURE ENGINEERING '''

def build_features(events:pd.DataFrame, config:dict, out) -> pd.DataFrame:
	cols = config['columns']
	matrix = build_proportion_matrix(events, cols['subscriber'], cols['category'])
	check_proportion_matrix(matrix)
	logger.info("Proportion matrix: %d subscribers x %d channels", *matrix.shape)
	section('PROPORTION MATRIX', out)
	print(
		f"## Shape: {matrix.shape[0]} subscribers x {matrix.shape[1]} channels",
		f"## Mean channel proportions:\n{matrix.mean().to_string()}",
		f"## First subscribers:\n{matrix.head()}",
		sep='\n\n', end='\n\n', file=out
	)
	return matrix



''' 4. SUBSCRIBER SEGMENTATION '''

def segment_subscribers(matrix:pd.DataFrame, config:dict, out) -> tuple:
	model = KMeansClustering(matrix, **config['kmeans'])
	section('SUBSCRIBER SEGMENTATION', out)

	if config.get('select_k'):
		best_k, scores = model.select_n_clusters(config['select_k'])
		print(f"## Silhouette by number of clusters:\n{scores}", f"=> Selected k = {best_k}",
			  sep='\n\n', end='\n\n', file=out)

	df_with_clusters = model.fit_predict()
	metrics = model.evaluate()
	print(
		f"## KMeans: k={model.n_clusters}, n_init={model.n_init}, algorithm={model.algorithm}",
		"## Cluster Evaluation Metrics:",
		*[f"  - {name.replace('_', ' ').title()}: {value:.4f}" for name, value in metrics.items()],
		sep='\n', end='\n\n', file=out
	)
	return model, df_with_clusters



''' 5. CLUSTER PROFILING '''

def profile_clusters(model:KMeansClustering, df_with_clusters:pd.DataFrame, out) -> pd.DataFrame:
	section('CLUSTER PROFILING', out)
	explained = model.explain_clusters(df_with_clusters)

	# Dominant channel of every subscriber vs. their cluster
	dominant = df_with_clusters.drop(columns='Cluster').idxmax(axis=1).rename('Dominant_Channel')
	dominant_by_cluster = create_percentage_crosstab(
		pd.concat([df_with_clusters['Cluster'], dominant], axis=1), 'Cluster', 'Dominant_Channel'
	)
	print(
		f"## Cluster centroids (mean channel proportions):\n{model.centroids}",
		f"## Clusters description:\n{explained[['size', 'size_percent', 'dominant_channel']]}",
		f"## Subscribers' dominant channel by cluster (%):\n{dominant_by_cluster}",
		sep='\n\n', end='\n\n', file=out
	)
	return explained



''' 6. REPORTING '''

def save_outputs(model:KMeansClustering, matrix:pd.DataFrame, df_with_clusters:pd.DataFrame, config:dict) -> None:
	reports_dir = config['output_dirs']['Reports']
	reports_dir.mkdir(parents=True, exist_ok=True)
	matrix.to_csv(reports_dir / 'proportion_matrix.csv')
	df_with_clusters[['Cluster']].to_csv(reports_dir / 'subscriber_clusters.csv')
	model.centroids.to_csv(reports_dir / 'cluster_centroids.csv')
	model.save_model(config['output_dirs']['Models'] / 'kmeans_model.pkl')
	logger.info("Outputs saved to %s", reports_dir)



def main(config:dict=CONFIG) -> pd.DataFrame:
	reports_dir = config['output_dirs']['Reports']
	reports_dir.mkdir(parents=True, exist_ok=True)
	cols = config['columns']

	with open(reports_dir / 'ReaderAnalysis.txt', 'w') as out:
		print('WEB READER CHANNEL SEGMENTATION', '-'*31, sep='\n', file=out)

		# 1. Data acquisition
		events = load_events(config['input_file'], cols['subscriber'], cols['timestamp'], cols['category'])

		describe_events(events, config, out)
		matrix = build_features(events, config, out)
		model, df_with_clusters = segment_subscribers(matrix, config, out)
		profile_clusters(model, df_with_clusters, out)
		save_outputs(model, matrix, df_with_clusters, config)

	logger.info("Report saved to %s", reports_dir / 'ReaderAnalysis.txt')
	return df_with_clusters


def run() -> None:
	logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s %(name)s: %(message)s')
	warnings.filterwarnings('ignore')
	config = CONFIG
	if len(sys.argv) > 2:
		print("Usage: python ReaderAnalysis.py [events.csv]")
		sys.exit(1)
	if len(sys.argv) == 2:
		config = {**CONFIG, 'input_file': Path(sys.argv[1])}
	main(config)


if __name__ == "__main__":
	run()
