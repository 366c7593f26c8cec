"""Wizard engine and its Streamlit rendering."""
