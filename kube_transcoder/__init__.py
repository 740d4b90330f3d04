"""
Kube Transcoder
===============

Runs the media server's transcoder as a separate Kubernetes pod.

What it does:
  1. Reads its own pod to learn the image, env and storage it runs with
  2. Creates a worker pod with the same image/env/storage running the
     transcoder command it was invoked with
  3. Waits for the worker to succeed or fail, or for SIGINT / SIGTERM
  4. Deletes the worker pod, whatever happened in step 3

Requirements:
  pip install kubernetes

Usage:
  KUBE_NAMESPACE=media KUBE_POD_NAME=$HOSTNAME PMS_INTERNAL_ADDRESS=http://plex:32400 \\
      kube-transcoder -progressurl http://127.0.0.1:32400/... ...
"""

__version__ = "0.1.0"
