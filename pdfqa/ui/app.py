# pdfqa/ui/app.py
import os

import requests
import streamlit as st

API_BASE = os.getenv("PDFQA_API_BASE", "http://127.0.0.1:3000/api")
TIMEOUT = 120


def error_message(response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    return body.get("error") or body.get("detail") or "Unknown error"


st.set_page_config(page_title="PDF Question Answering", layout="centered")

st.title("PDF Question Answering")
st.write("Upload PDFs, then ask questions answered from their content.")

st.sidebar.header("Index")

try:
    response = requests.get(f"{API_BASE}/documents", timeout=TIMEOUT)
    if response.status_code == 200:
        document_count = response.json()["document_count"]
        st.sidebar.metric("Indexed Chunks", document_count)
    else:
        document_count = 0
        st.sidebar.error("Cannot connect to API")
except requests.RequestException as e:
    document_count = 0
    st.sidebar.error(f"API Error: {str(e)}")

for label, endpoint in (("Save index", "save"), ("Load index", "load"), ("Clear all", "clear")):
    if st.sidebar.button(label, use_container_width=True):
        try:
            response = requests.post(f"{API_BASE}/{endpoint}", timeout=TIMEOUT)
            if response.status_code == 200:
                st.sidebar.success(response.json()["message"])
                st.rerun()
            else:
                st.sidebar.error(error_message(response))
        except requests.RequestException as e:
            st.sidebar.error(f"Error: {str(e)}")

st.divider()

st.header("Upload PDF")

uploaded_file = st.file_uploader("Choose a PDF file", type=["pdf"])

if uploaded_file:
    col1, col2 = st.columns([3, 1])

    with col1:
        st.write(f"Selected: {uploaded_file.name}")
        st.write(f"Size: {uploaded_file.size / 1024:.2f} KB")

    with col2:
        if st.button("Upload", type="primary", use_container_width=True):
            with st.spinner("Extracting and indexing..."):
                try:
                    files = {
                        "pdf": (uploaded_file.name, uploaded_file.getvalue(), "application/pdf")
                    }
                    response = requests.post(f"{API_BASE}/upload-pdf", files=files, timeout=TIMEOUT)

                    if response.status_code == 200:
                        result = response.json()
                        st.success(
                            f"Indexed {result['documents_created']} chunks "
                            f"from {result['pages']} page(s)"
                        )
                        st.rerun()
                    else:
                        st.error(f"Upload failed: {error_message(response)}")
                except requests.RequestException as e:
                    st.error(f"Error: {str(e)}")

st.divider()

st.header("Ask a Question")

if not document_count:
    st.info("Please upload a PDF first")
else:
    question = st.text_area(
        "Enter your question",
        placeholder="What is the main topic of this document?",
    )

    if st.button("Ask Question", type="primary"):
        if not question.strip():
            st.warning("Question cannot be empty")
        else:
            with st.spinner("Thinking..."):
                try:
                    response = requests.post(
                        f"{API_BASE}/query",
                        json={"query": question.strip()},
                        timeout=TIMEOUT,
                    )

                    if response.status_code == 200:
                        result = response.json()["data"]

                        st.markdown(result["answer"])

                        for rank, source in enumerate(result["sources"], 1):
                            metadata = source.get("metadata", {})
                            label = (
                                f"[Document {rank}] {metadata.get('source', source['id'])}"
                                f" (chunk {metadata.get('chunkIndex', '?')})"
                            )
                            with st.expander(label):
                                st.write(source["content"])
                    else:
                        st.error(f"Error: {error_message(response)}")

                except requests.RequestException as e:
                    st.error(f"Error: {str(e)}")

st.divider()
st.caption("FAISS retrieval, similarity reranking, Gemini answers")
