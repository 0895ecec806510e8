import streamlit as st
import time
from datetime import date
from brow_prompts import BROW_PREFERENCES, DEFAULT_BROW_PREFERENCE, REFERENCE_YEAR
from brow_analyzer import analyze_profile, MissingApiKeyError
from brow_image_editor import decode_data_url
from intake import build_intake, is_intake_complete, IntakeValidationError

st.set_page_config(
    page_title="AI Brow Consultation",
    layout="wide"
)

def load_css():
    """Load custom CSS for the dashboard theme"""
    try:
        with open('styles.css') as f:
            st.markdown(f'<style>{f.read()}</style>', unsafe_allow_html=True)
    except FileNotFoundError:
        pass

load_css()

if 'analysis_result' not in st.session_state:
    st.session_state.analysis_result = None
if 'portrait_bytes' not in st.session_state:
    st.session_state.portrait_bytes = None


def reset_analysis():
    st.session_state.analysis_result = None
    st.session_state.portrait_bytes = None


def render_intake_form():
    st.title("AI Brow Consultation")
    st.markdown("""
    Upload a portrait so the AI can read your facial lines, features and presence,
    then preview three brow styles designed for your face.
    """)

    col_form, col_image = st.columns([1, 1])

    with col_image:
        uploaded_file = st.file_uploader(
            "Portrait photo",
            type=["jpg", "jpeg", "png", "webp"],
            help="A clear, front-facing photo works best"
        )
        if uploaded_file is not None:
            st.image(uploaded_file, caption="Your portrait", use_container_width=True)

    with col_form:
        st.subheader("Start Your Analysis")

        name = st.text_input("Full name", placeholder="Enter your name...")
        dob = st.date_input(
            "Date of birth",
            value=None,
            min_value=date(1900, 1, 1),
            max_value=date.today()
        )
        job = st.text_input("Current occupation", placeholder="e.g. Business, CEO, Design...")

        preference_labels = {pref["id"]: f"{pref['label']} - {pref['desc']}" for pref in BROW_PREFERENCES}
        brow_preference = st.radio(
            "Brow preference",
            options=list(preference_labels.keys()),
            index=list(preference_labels.keys()).index(DEFAULT_BROW_PREFERENCE),
            format_func=lambda pref_id: preference_labels[pref_id]
        )

        has_old_tattoo = st.toggle("I have an old brow tattoo (correction)", value=False)
        if has_old_tattoo:
            st.caption("* The AI will design a slimmer, more refined shape to correct the old one.")

        image_bytes = uploaded_file.getvalue() if uploaded_file is not None else None
        ready = is_intake_complete(name, dob, job, image_bytes)

        analyze_button = st.button("Analyze Now", type="primary", disabled=not ready, use_container_width=True)

    if not analyze_button:
        return

    try:
        intake = build_intake(
            name,
            dob,
            job,
            image_bytes,
            uploaded_file.type,
            brow_preference=brow_preference,
            has_old_tattoo=has_old_tattoo
        )
    except IntakeValidationError as e:
        st.error(str(e))
        st.stop()

    progress_bar = st.progress(0)
    status_text = st.empty()

    def update_progress(message, current, total):
        progress_value = min(1.0, max(0.0, current / total)) if total > 0 else 0.0
        progress_bar.progress(progress_value)
        status_text.text(message)

    try:
        start_time = time.time()
        with st.spinner("Processing and generating your brow previews..."):
            result = analyze_profile(
                intake.portrait,
                intake.name,
                intake.dob.isoformat(),
                intake.job,
                brow_preference=intake.browPreference,
                has_old_tattoo=intake.hasOldTattoo,
                progress_callback=update_progress
            )
        elapsed_time = time.time() - start_time

        st.session_state.analysis_result = result
        st.session_state.portrait_bytes = intake.portrait.data
        progress_bar.empty()
        status_text.empty()
        st.success(f"Analysis completed in {elapsed_time:.1f} seconds!")
        st.rerun()

    except MissingApiKeyError as e:
        st.error(f"Cannot proceed: {str(e)}")
    except Exception as e:
        st.error("The analysis could not be completed. Please try again.")
        import traceback
        with st.expander("Technical Details"):
            st.code(f"{type(e).__name__}: {str(e)}\n\n{traceback.format_exc()}")


def render_style_card(style):
    if style.isRecommended:
        st.markdown("**⭐ EXPERT RECOMMENDATION**")

    if style.imageUrl:
        _, image_bytes = decode_data_url(style.imageUrl)
        st.image(image_bytes, caption="AI healed effect", use_container_width=True)
    else:
        st.info("Still rendering this style...")

    st.markdown(f"### {style.name}")
    st.markdown(f"*{style.impression}*")
    st.markdown(f"**Why it suits you:** {style.reason}")
    st.caption(f"Suits your job: {style.jobSuitability}")


def render_analysis(result):
    face = result.faceAnalysis

    col_photo, col_face = st.columns([1, 2])
    with col_photo:
        if st.session_state.portrait_bytes:
            st.image(st.session_state.portrait_bytes, caption="Face scan", use_container_width=True)

    with col_face:
        st.header("Face Analysis")
        st.markdown(f"**{face.dominantEnergy}**")
        st.warning(f"**Current brow diagnosis:** \"{face.currentBrowProblems}\"")

        col_a, col_b = st.columns(2)
        with col_a:
            st.markdown(f"📐 **Face proportions**  \n{face.goldenRatio}")
            st.markdown(f"🔮 **Presence & aura**  \n{face.aura}")
        with col_b:
            st.markdown(f"✨ **Features**  \n{face.features}")
            st.markdown(f"👁️ **Eyes**  \n{face.eyes}")

    st.divider()

    st.caption(f"STYLE SUGGESTIONS {REFERENCE_YEAR}")
    st.subheader("3 Brow Shapes Designed For You")
    style_columns = st.columns(len(result.browStyles))
    for column, style in zip(style_columns, result.browStyles):
        with column:
            render_style_card(style)

    st.divider()

    col_color, col_projection = st.columns(2)
    with col_color:
        st.caption("RECOMMENDED INK COLOUR")
        st.subheader(result.colorSuggestion.color)
        st.markdown(result.colorSuggestion.reason)

    with col_projection:
        st.subheader("Projected Result")
        before_after = result.beforeAfter
        metric_a, metric_b, metric_c = st.columns(3)
        metric_a.metric("Softness", before_after.softnessIncrease)
        metric_b.metric("Brightness", before_after.brightnessIncrease)
        metric_c.metric("Younger", before_after.yearsYounger)
        st.markdown(f"*\"{before_after.firstImpression}\"*")

    st.divider()

    numerology = result.numerology
    st.subheader("Numerology")
    st.caption(f"Energy decoded from your birth date ({REFERENCE_YEAR})")
    st.metric("Main number", numerology.mainNumber)

    col_mission, col_connection = st.columns(2)
    with col_mission:
        st.markdown(f"**Soul mission**  \n{numerology.soulMission}")
        st.markdown(f"**Lesson for {REFERENCE_YEAR}**  \n{numerology.yearlyLesson}")
        st.markdown(f"**Career energy**  \n{numerology.careerEnergy}")
    with col_connection:
        st.markdown(f"**Brow connection**  \n{numerology.connectionToBrow}")
        st.markdown(f"**Life phase & advice**  \n{result.lifeAdvice.currentPhase}")
        st.markdown(result.lifeAdvice.focusThisYear)
        st.markdown(f"**Posture to build**  \n{result.lifeAdvice.postureToBuild}")

    st.divider()

    for suggestion in result.softClosing.suggestions:
        st.markdown(f"### \"{suggestion}\"")
    st.markdown(f"*{result.softClosing.finalNote}*")

    st.button("New Analysis", on_click=reset_analysis)


if st.session_state.analysis_result:
    render_analysis(st.session_state.analysis_result)
else:
    render_intake_form()
