#!/usr/bin env python
# -*- coding: utf-8 -*-

"""
Author: Michael Garancher
Date: 2025-04-12
Description: Loads web reader events and reshapes them into a per-subscriber channel proportion matrix
"""


import logging
from pathlib import Path

import numpy as np
import pandas as pd


logger = logging.getLogger(__name__)

# Textual tokens standing for a missing value in exported event logs
NA_TOKENS:list = ['NULL', 'NA', 'None', '']



def load_events(csv:Path, subscriber_col:str='subscriber_id', timestamp_col:str='timestamp',
				category_col:str='channel') -> pd.DataFrame:
	"""
	Load reading events from a CSV file.

	Rows missing a subscriber or a timestamp are rejected. Rows with a missing
	channel are kept; they are excluded later when building the proportion matrix.
	"""
	csv = Path(csv)
	if not csv.exists():
		raise FileNotFoundError(f"Events file not found: {csv}")

	df = pd.read_csv(csv, dtype={subscriber_col: 'string', category_col: 'string'}, keep_default_na=True)
	missing_cols = [c for c in (subscriber_col, timestamp_col, category_col) if c not in df.columns]
	if missing_cols:
		raise ValueError(f"Missing columns in {csv.name}: {missing_cols}")

	df = df[[subscriber_col, timestamp_col, category_col]].copy()
	df[subscriber_col] = df[subscriber_col].str.strip()
	df[category_col] = df[category_col].str.strip()
	df = df.replace(NA_TOKENS, pd.NA)
	df[timestamp_col] = pd.to_datetime(df[timestamp_col], errors='coerce')

	malformed = df[subscriber_col].isna() | df[timestamp_col].isna()
	if (n := int(malformed.sum())) > 0:
		logger.warning("Rejected %d malformed rows (missing subscriber or timestamp) from %s", n, csv.name)
	df = df.loc[~malformed].reset_index(drop=True)

	logger.info("Loaded %d events from %s", df.shape[0], csv.name)
	return df


def build_proportion_matrix(events:pd.DataFrame, subscriber_col:str='subscriber_id',
							category_col:str='channel') -> pd.DataFrame:
	"""
	Build the dense subscriber x channel proportion matrix.

	Each cell holds the fraction of a subscriber's non-missing events falling in
	that channel. Events without a channel are discarded first, so subscribers
	whose channels are all missing produce no row and every total is > 0.
	Channels a subscriber never read are 0.0.
	"""
	missing_cols = [c for c in (subscriber_col, category_col) if c not in events.columns]
	if missing_cols:
		raise ValueError(f"Events are missing columns: {missing_cols}")

	observed = events.dropna(subset=[subscriber_col, category_col])
	if observed.empty:
		return pd.DataFrame(
			index=pd.Index([], name=subscriber_col),
			columns=pd.Index([], name=category_col),
			dtype=float
		)

	counts = observed.groupby([subscriber_col, category_col], observed=True, sort=True).size()
	totals = counts.groupby(level=subscriber_col, observed=True).transform('sum')
	matrix = (counts / totals).unstack(category_col, fill_value=0.0)\
							  .sort_index(axis=0)\
							  .sort_index(axis=1)\
							  .astype(float)
	matrix.index = matrix.index.astype(object)
	matrix.columns = pd.Index(matrix.columns.astype(object), name=category_col)
	matrix.index.name = subscriber_col
	return matrix


def check_proportion_matrix(matrix:pd.DataFrame, tol:float=1e-9) -> None:
	""" Raise ValueError if a row leaves [0, 1] or does not sum to 1."""
	if matrix.empty:
		return
	values = matrix.to_numpy(dtype=float)
	out_of_range = matrix.index[((values < 0) | (values > 1)).any(axis=1)]
	if len(out_of_range) > 0:
		raise ValueError(f"Proportions outside [0, 1] for subscribers: {out_of_range.to_list()[:10]}")
	bad_sums = matrix.index[~np.isclose(values.sum(axis=1), 1.0, rtol=0, atol=tol)]
	if len(bad_sums) > 0:
		raise ValueError(f"Rows not summing to 1 for subscribers: {bad_sums.to_list()[:10]}")


def summarize_events(events:pd.DataFrame, subscriber_col:str='subscriber_id', timestamp_col:str='timestamp',
					 category_col:str='channel') -> dict:
	"""Describe an event log: volumes, missing channels, date range and channel shares."""
	n_events = events.shape[0]
	n_missing = int(events[category_col].isna().sum())
	subscribers = events[subscriber_col].dropna().unique()
	active = events.dropna(subset=[category_col])[subscriber_col].unique()
	timestamps = pd.to_datetime(events[timestamp_col], errors='coerce') if timestamp_col in events.columns else pd.Series(dtype='datetime64[ns]')

	return {
		'n_events': n_events,
		'n_subscribers': len(subscribers),
		'n_channels': int(events[category_col].nunique(dropna=True)),
		'n_missing_channel': n_missing,
		'missing_channel_pct': round(n_missing / n_events * 100, 2) if n_events else 0.0,
		'n_dropped_subscribers': len(set(subscribers) - set(active)),
		'first_event': timestamps.min() if n_events else None,
		'last_event': timestamps.max() if n_events else None,
		'channel_share_pct': (events[category_col].value_counts(normalize=True, dropna=True) * 100).round(2),
	}
