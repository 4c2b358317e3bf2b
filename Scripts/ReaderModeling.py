#!/usr/bin env python
# -*- coding: utf-8 -*-

"""
Author: Michael Garancher
Date: 2025-04-12
Description: KMeans segmentation of subscribers on their channel reading proportions
"""


from pathlib import Path
import logging

import numpy as np
import pandas as pd

from sklearn.cluster import KMeans
from sklearn.metrics import silhouette_score, davies_bouldin_score, calinski_harabasz_score
import joblib


logger = logging.getLogger(__name__)

ALGORITHMS:tuple = ('lloyd', 'elkan')



class KMeansClustering:
	"""
	KMeansClustering class for segmenting subscribers on their channel proportion matrix.
	The matrix is clustered as is: proportions share the same [0, 1] scale, so centroids
	stay readable as mean reading profiles.

	Attributes:
		X (pd.DataFrame): The proportion matrix (subscribers x channels).
		n_clusters (int): Number of clusters k.
		n_init (int): Number of KMeans restarts; the run with the lowest inertia is kept.
		algorithm (str): KMeans variant, 'lloyd' or 'elkan'.
		random_state (int): Seed for centroid initialisation.
		best_model (KMeans): The fitted (or loaded) model.

	Methods:
		__init__(matrix: pd.DataFrame, n_clusters: int = 4, n_init: int = 25, algorithm: str = 'lloyd', random_state: int = 42):
			Initializes the instance with the proportion matrix and the KMeans configuration.
		safe_silhouette(X, labels):
			Static method to calculate the silhouette score safely, handling edge cases.
		select_n_clusters(candidates):
			Sweeps candidate k values, keeps the one with the best silhouette.
			Returns the best k and the table of scores.
		fit_predict():
			Fits KMeans and returns the matrix with an additional 'Cluster' column.
		predict(matrix=None):
			Predicts clusters with the fitted model, aligning new matrices on the training channels.
		centroids:
			Centroid vectors as a cluster x channel dataframe.
		evaluate():
			Returns a dictionary of evaluation metrics.
		explain_clusters(df_with_clusters):
			Generates a summary of key characteristics for each cluster.
		save_model(filepath: Path):
			Saves the model to a file.
		load_model(filepath: Path):
			Loads the model from a file.
	"""
	def __init__(self, matrix:pd.DataFrame, n_clusters:int=4, n_init:int=25, algorithm:str='lloyd', random_state:int=42):
		self.X = matrix.astype(float)
		self.n_clusters = n_clusters
		self.n_init = n_init
		self.algorithm = algorithm
		self.random_state = random_state

		self.best_model = None
		self.labels = None

	@property
	def n_clusters(self) -> int:
		return self._n_clusters
	@n_clusters.setter
	def n_clusters(self, n_clusters:int) -> None:
		if int(n_clusters) < 1:
			raise ValueError("n_clusters must be at least 1")
		self._n_clusters = int(n_clusters)

	@property
	def n_init(self) -> int:
		return self._n_init
	@n_init.setter
	def n_init(self, n_init:int) -> None:
		if int(n_init) < 1:
			raise ValueError("n_init must be at least 1")
		self._n_init = int(n_init)

	@property
	def algorithm(self) -> str:
		return self._algorithm
	@algorithm.setter
	def algorithm(self, algorithm:str) -> None:
		if algorithm not in ALGORITHMS:
			raise ValueError(f"Invalid algorithm: {algorithm}. Choose from {ALGORITHMS}")
		self._algorithm = algorithm

	@staticmethod
	def safe_silhouette(X, labels) -> float:
		""" Safely compute the silhouette score, -1 when it is undefined."""
		unique_labels = np.unique(labels)
		# Needs 2 <= n_labels <= n_samples - 1
		if 1 < len(unique_labels) < len(labels):
			return float(silhouette_score(X, labels))
		return -1.0

	def _model(self, n_clusters:int) -> KMeans:
		return KMeans(
			n_clusters=n_clusters,
			n_init=self.n_init,
			algorithm=self.algorithm,
			random_state=self.random_state
		)

	def _check_size(self, n_clusters:int) -> None:
		if self.X.shape[0] < n_clusters:
			raise ValueError(
				f"Cannot form {n_clusters} clusters from {self.X.shape[0]} subscribers"
			)

	def select_n_clusters(self, candidates=range(2, 9)) -> tuple:
		"""Pick k by silhouette over the candidate values and set n_clusters accordingly."""
		candidates = [k for k in candidates if 2 <= k < self.X.shape[0]]
		if not candidates:
			raise ValueError(f"No candidate k is valid for {self.X.shape[0]} subscribers")

		logger.info("Working on k selection over %s...", candidates)
		scores = []
		for k in candidates:
			km = self._model(k).fit(self.X.to_numpy())
			scores.append({
				'n_clusters': k,
				'silhouette': self.safe_silhouette(self.X.to_numpy(), km.labels_),
				'inertia': km.inertia_
			})
		scores = pd.DataFrame(scores).set_index('n_clusters')

		best_k = int(scores['silhouette'].idxmax())
		self.n_clusters = best_k
		logger.info("Best k: %d (silhouette %.4f)", best_k, scores.loc[best_k, 'silhouette'])
		return best_k, scores

	def fit_predict(self) -> pd.DataFrame:
		"""Fit KMeans on the proportion matrix and assign a cluster to every subscriber."""
		self._check_size(self.n_clusters)
		logger.info(
			"Fitting KMeans (k=%d, n_init=%d, algorithm=%s) on %d subscribers x %d channels",
			self.n_clusters, self.n_init, self.algorithm, *self.X.shape
		)
		self.best_model = self._model(self.n_clusters).fit(self.X.to_numpy())
		self.labels = self.best_model.labels_

		df_with_clusters = self.X.copy(deep=True)
		df_with_clusters['Cluster'] = self.labels
		logger.info("Clusters predicted successfully")
		return df_with_clusters

	def predict(self, matrix:pd.DataFrame=None) -> pd.DataFrame:
		""" Predict clusters for the training matrix or a new one."""
		if self.best_model is None:
			raise ValueError("Model has not been trained yet. Please call fit_predict() or load_model() first.")
		X = self.X if matrix is None else matrix.reindex(columns=self.X.columns, fill_value=0.0).astype(float)
		if X.shape[1] != self.best_model.n_features_in_:
			raise ValueError(
				f"Matrix has {X.shape[1]} channels, model was trained on {self.best_model.n_features_in_}"
			)
		df_with_clusters = X.copy(deep=True)
		df_with_clusters['Cluster'] = self.best_model.predict(X.to_numpy())
		return df_with_clusters

	@property
	def centroids(self) -> pd.DataFrame:
		if self.best_model is None:
			raise ValueError("Model has not been trained yet.")
		return pd.DataFrame(
			self.best_model.cluster_centers_,
			index=pd.RangeIndex(self.best_model.n_clusters, name='Cluster'),
			columns=self.X.columns
		)

	def evaluate(self) -> dict:
		"""	Evaluate the model with internal cluster validity indices."""
		if self.best_model is None:
			raise ValueError("Model has not been trained yet.")

		X = self.X.to_numpy()
		labels = self.best_model.predict(X)
		metrics = {}

		# Silhouette score (cluster cohesion criterion)
		metrics['silhouette'] = self.safe_silhouette(X, labels)

		if len(np.unique(labels)) > 1:
			# Calinski-Harabasz Index (variance ratio criterion)
			metrics['calinski_harabasz'] = float(calinski_harabasz_score(X, labels))
			# Davies-Bouldin Index (cluster separation criterion)
			metrics['davies_bouldin'] = float(davies_bouldin_score(X, labels))

		metrics['inertia'] = float(self.best_model.inertia_)

		for name, value in metrics.items():
			logger.info("%s: %.4f", name.replace('_', ' ').title(), value)
		return metrics

	def explain_clusters(self, df_with_clusters:pd.DataFrame) -> pd.DataFrame:
		"""Generate a summary of key characteristics for each cluster."""
		result = {}
		channels = [c for c in df_with_clusters.columns if c != 'Cluster']
		for cluster in sorted(df_with_clusters['Cluster'].unique()):
			cluster_data = df_with_clusters[df_with_clusters['Cluster'] == cluster]
			profile = cluster_data[channels].mean()
			result[f'Cluster {cluster}'] = {
				'size': len(cluster_data),
				'size_percent': len(cluster_data) / len(df_with_clusters) * 100,
				'dominant_channel': profile.idxmax()
			}
			for col in channels:
				result[f'Cluster {cluster}'][f'avg_{col}'] = profile[col]
		return pd.DataFrame(result).T

	def save_model(self, filepath:Path) -> None:
		""" Save model to a file."""
		if self.best_model is None:
			raise ValueError("Model has not been trained yet.")
		filepath = Path(filepath)
		if not filepath.parent.exists():
			filepath.parent.mkdir(parents=True, exist_ok=True)
		joblib.dump(self.best_model, filepath)
		logger.info("Model saved to %s", filepath)

	def load_model(self, filepath:Path) -> None:
		""" Load model from a .pkl file."""
		filepath = Path(filepath)
		if not filepath.exists():
			raise FileNotFoundError(f"Model file not found: {filepath}")
		self.best_model = joblib.load(filepath)
		self.n_clusters = self.best_model.n_clusters
		logger.info("Model loaded from %s", filepath)
