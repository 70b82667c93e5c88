# SPDX-License-Identifier: Apache-2.0
"""
LMSystems SDK Tests

Unit tests for endpoint resolution, the initialization gate, message and
stream normalization, the PurchasedGraph proxy and the thread client.
"""
