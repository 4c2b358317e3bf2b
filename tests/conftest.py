"""
Shared fixtures for the web reader segmentation tests.

Event logs are built in memory (or written to tmp_path) so that the tests
never depend on a dataset checked into the repository.
"""

import pandas as pd
import pytest


def make_events(rows):
	"""Expand (subscriber, channel, count) tuples into a daily event log."""
	records = []
	for subscriber, channel, count in rows:
		records.extend([(subscriber, channel)] * count)
	events = pd.DataFrame(records, columns=['subscriber_id', 'channel'])
	events.insert(1, 'timestamp', pd.date_range('2024-01-01', periods=len(events), freq='h'))
	return events


@pytest.fixture
def small_events():
	"""A1 reads soups twice and salads once, B2 only has missing channels, C3 reads others."""
	return pd.DataFrame({
		'subscriber_id': ['A1', 'A1', 'A1', 'B2', 'B2', 'C3', 'C3'],
		'timestamp': pd.to_datetime([
			'2024-01-01', '2024-01-02', '2024-01-03',
			'2024-01-01', '2024-01-05',
			'2024-01-02', '2024-01-04',
		]),
		'channel': ['soups', 'soups', 'salads', None, None, 'others', None],
	})


@pytest.fixture
def two_group_events():
	"""Six soup readers and six sports readers, each with a distinct profile."""
	rows = []
	for i in range(6):
		rows += [(f'S{i}', 'soups', 10 + i), (f'S{i}', 'salads', 2)]
		rows += [(f'T{i}', 'sports', 10 + i), (f'T{i}', 'others', 2)]
	return make_events(rows)


@pytest.fixture
def events_csv(tmp_path, two_group_events):
	"""Write the two-group log to CSV, plus a few malformed rows."""
	path = tmp_path / 'events.csv'
	df = two_group_events.copy()
	df['timestamp'] = df['timestamp'].dt.strftime('%Y-%m-%d %H:%M:%S')
	malformed = pd.DataFrame({
		'subscriber_id': ['', 'S0', 'T0', 'U9'],
		'timestamp': ['2024-02-01 00:00:00', 'not a date', '2024-02-01 00:00:00', '2024-02-02 00:00:00'],
		'channel': ['soups', 'soups', 'None', 'NULL'],
	})
	pd.concat([df, malformed], ignore_index=True).to_csv(path, index=False)
	return path


@pytest.fixture
def report_config(tmp_path, events_csv):
	"""Configuration pointing every output to tmp_path."""
	return {
		'input_file': events_csv,
		'output_dirs': {
			'Reports': tmp_path / 'Reports',
			'Models': tmp_path / 'Models',
		},
		'columns': {
			'subscriber': 'subscriber_id',
			'timestamp': 'timestamp',
			'category': 'channel',
		},
		'kmeans': {
			'n_clusters': 2,
			'n_init': 10,
			'algorithm': 'lloyd',
			'random_state': 42,
		},
		'select_k': None,
	}
