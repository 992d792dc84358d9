"""
Prompt templates for the analysis generators.
"""

from __future__ import annotations

from typing import Mapping, Sequence

from ..retrieval.engine import SearchHit


def tldr_summary(paper_text: str) -> str:
    return f"""You are an expert research paper summarizer. Create a concise TL;DR summary of the following research paper.

The summary should be 2-3 sentences maximum and capture:
- The main research question or problem
- The key approach or method
- The primary finding or contribution

Paper text:
{paper_text}

Provide only the TL;DR summary, no additional commentary."""


def paragraph_summary(paper_text: str) -> str:
    return f"""You are an expert research paper summarizer. Create an executive summary paragraph of the following research paper.

The summary should be one detailed paragraph (5-7 sentences) covering:
- Research motivation and problem statement
- Methodology and approach
- Key results and findings
- Significance and impact

Paper text:
{paper_text}

Provide only the executive summary paragraph, no additional commentary."""


def detailed_summary(paper_text: str) -> str:
    return f"""You are an expert research paper summarizer. Create a detailed section-wise summary of the following research paper.

Cover in depth:
1. **Problem & Motivation**
2. **Methodology**
3. **Experiments & Results**
4. **Contributions**
5. **Limitations & Future Work**

Paper text:
{paper_text}

Provide your response in Markdown format with clear headings."""


def conference_review(paper_text: str, domain: str = "computer science") -> str:
    return f"""You are an expert reviewer for a top-tier {domain} conference. Write a comprehensive peer review for the following paper.

Paper text:
{paper_text}

Return your response as a JSON object with this structure:
{{
  "summary": "Summary text...",
  "strengths": ["Strength 1", "Strength 2"],
  "weaknesses": ["Weakness 1", "Weakness 2"],
  "detailedComments": "Detailed feedback...",
  "questions": ["Question 1", "Question 2"],
  "novelty": "Short assessment of novelty...",
  "soundness": "Short assessment of soundness...",
  "clarity": "Short assessment of clarity...",
  "overallScore": 7,
  "confidenceScore": 4
}}

Provide only the JSON, no additional commentary."""


def extract_concepts(paper_text: str) -> str:
    return f"""You are an expert at extracting structured knowledge from research papers. Extract the top 20 key concepts, methods, datasets, metrics and models from the following paper, and the relationships between them (uses, extends, evaluates-on, compares-with, improves).

Paper text:
{paper_text}

Return your response as a JSON object with this structure:
{{
  "nodes": [
    {{"id": "unique-id", "label": "Node Name", "type": "concept|method|dataset|metric|model"}}
  ],
  "edges": [
    {{"source": "node-id", "target": "node-id", "relationship": "uses|extends|evaluates-on|compares-with|improves"}}
  ]
}}

Provide only the JSON, no additional commentary."""


def answer_question(
    question: str,
    hits: Sequence[SearchHit],
    titles: Mapping[str, str],
) -> str:
    excerpts = "\n\n".join(
        f'[{i}] From "{titles.get(hit.document_id, hit.document_id)}", section "{hit.section}":\n{hit.text}'
        for i, hit in enumerate(hits, start=1)
    )
    return f"""You are an expert research assistant. Answer the user's question based on the provided paper excerpts.

User's question:
{question}

Relevant excerpts from papers:
{excerpts}

Provide a clear, accurate answer that:
- Directly addresses the question
- Cites specific excerpts using [1], [2], etc.
- Acknowledges if the papers don't fully answer the question

Format your response as:
**Answer**: [Your answer with citations]

**Supporting Evidence**: [Brief explanation of which excerpts support your answer]"""
