from kubecharter.templating.deployment import DeploymentTemplater


def test_image_and_pull_policy():
    """
    IMAGE TEST: The literal reference and its pull policy give way to
    values-driven lookups at the same indentation.
    """
    text = (
        "      containers:\n"
        "      - name: manager\n"
        "        image: myproj/ctrl:v1\n"
        "        imagePullPolicy: IfNotPresent\n"
        "        ports: []\n"
    )
    expected = (
        "      containers:\n"
        "      - name: manager\n"
        '        image: "{{ .Values.controllerManager.image.repository }}:{{ .Values.controllerManager.image.tag }}"\n'
        "        imagePullPolicy: {{ .Values.controllerManager.image.pullPolicy }}\n"
        "        ports: []\n"
    )
    templater = DeploymentTemplater()
    out = templater.template_image(text)
    assert out == expected
    assert templater.template_image(out) == expected


def test_passes_need_manager_container():
    text = "      - name: sidecar\n        image: busybox\n        resources: {}\n"
    templater = DeploymentTemplater()
    assert templater.template_image(text) == text
    assert templater.template_env(text) == text
    assert templater.template_resources(text) == text
    assert templater.template_controller_manager_args(text) == text


def test_existing_env_is_replaced():
    text = (
        "      - name: manager\n"
        "        env:\n"
        "        - name: FOO\n"
        "          value: bar\n"
        "        image: x\n"
    )
    expected = (
        "      - name: manager\n"
        "        env:\n"
        "          {{- if .Values.controllerManager.env }}\n"
        "          {{- toYaml .Values.controllerManager.env | nindent 10 }}\n"
        "          {{- else }}\n"
        "          []\n"
        "          {{- end }}\n"
        "        image: x\n"
    )
    templater = DeploymentTemplater()
    out = templater.template_env(text)
    assert out == expected
    assert templater.template_env(out) == expected


def test_missing_env_is_inserted_after_manager_name():
    text = "      - name: manager\n        image: x\n"
    expected = (
        "      - name: manager\n"
        "        env:\n"
        "          {{- if .Values.controllerManager.env }}\n"
        "          {{- toYaml .Values.controllerManager.env | nindent 10 }}\n"
        "          {{- else }}\n"
        "          []\n"
        "          {{- end }}\n"
        "        image: x\n"
    )
    templater = DeploymentTemplater()
    out = templater.template_env(text)
    assert out == expected
    assert templater.template_env(out) == expected


def test_resources_block():
    text = (
        "      - name: manager\n"
        "        resources:\n"
        "          limits:\n"
        "            cpu: 500m\n"
        "        securityContext: {}\n"
    )
    expected = (
        "      - name: manager\n"
        "        resources:\n"
        "          {{- if .Values.controllerManager.resources }}\n"
        "          {{- toYaml .Values.controllerManager.resources | nindent 10 }}\n"
        "          {{- else }}\n"
        "          {}\n"
        "          {{- end }}\n"
        "        securityContext: {}\n"
    )
    templater = DeploymentTemplater()
    out = templater.template_resources(text)
    assert out == expected
    assert templater.template_resources(out) == expected


def test_pod_and_container_security_contexts():
    """
    DISAMBIGUATION TEST: The securityContext followed by serviceAccountName
    is the pod's; the other one belongs to the manager container.
    """
    text = (
        "      containers:\n"
        "      - name: manager\n"
        "        securityContext:\n"
        "          allowPrivilegeEscalation: false\n"
        "      securityContext:\n"
        "        runAsNonRoot: true\n"
        "      serviceAccountName: controller-manager\n"
    )
    expected = (
        "      containers:\n"
        "      - name: manager\n"
        "        securityContext:\n"
        "          {{- if .Values.controllerManager.securityContext }}\n"
        "          {{- toYaml .Values.controllerManager.securityContext | nindent 10 }}\n"
        "          {{- else }}\n"
        "          {}\n"
        "          {{- end }}\n"
        "      securityContext:\n"
        "        {{- if .Values.controllerManager.podSecurityContext }}\n"
        "        {{- toYaml .Values.controllerManager.podSecurityContext | nindent 8 }}\n"
        "        {{- else }}\n"
        "        {}\n"
        "        {{- end }}\n"
        "      serviceAccountName: controller-manager\n"
    )
    templater = DeploymentTemplater()
    out = templater.template_pod_security_context(text)
    assert "allowPrivilegeEscalation: false" in out
    assert "runAsNonRoot" not in out

    out = templater.template_container_security_context(out)
    assert out == expected

    assert templater.template_pod_security_context(out) == expected
    assert templater.template_container_security_context(out) == expected


def test_args_restructuring():
    """
    ARGS TEST: metrics bind gets an on/off switch, the health probe stays,
    free-form args move to values and the cert paths are kept.
    """
    text = (
        "      - name: manager\n"
        "        args:\n"
        "        - --metrics-bind-address=:8443\n"
        "        - --health-probe-bind-address=:8081\n"
        "        - --leader-elect\n"
        "        - --webhook-cert-path=/tmp/x\n"
        "        image: x\n"
    )
    expected = (
        "      - name: manager\n"
        "        args:\n"
        "        {{- if .Values.metrics.enable }}\n"
        "        - --metrics-bind-address=:8443\n"
        "        {{- else }}\n"
        "        # Bind to :0 to disable the controller-runtime managed metrics server\n"
        "        - --metrics-bind-address=0\n"
        "        {{- end }}\n"
        "        - --health-probe-bind-address=:8081\n"
        "        {{- range .Values.controllerManager.args }}\n"
        "        - {{ . }}\n"
        "        {{- end }}\n"
        "        - --webhook-cert-path=/tmp/x\n"
        "        image: x\n"
    )
    templater = DeploymentTemplater()
    out = templater.template_controller_manager_args(text)
    assert out == expected
    assert "--leader-elect" not in out
    assert templater.template_controller_manager_args(out) == expected


def test_args_without_items_untouched():
    text = "      - name: manager\n        args: []\n        image: x\n"
    assert DeploymentTemplater().template_controller_manager_args(text) == text


def test_cert_path_guards():
    text = (
        "        - --webhook-cert-path=/tmp/x\n"
        "        - --metrics-cert-path=/tmp/y\n"
    )
    expected = (
        "        {{- if .Values.certManager.enable }}\n"
        "        - --webhook-cert-path=/tmp/x\n"
        "        {{- end }}\n"
        "        {{- if and .Values.certManager.enable .Values.metrics.enable }}\n"
        "        - --metrics-cert-path=/tmp/y\n"
        "        {{- end }}\n"
    )
    templater = DeploymentTemplater()
    out = templater.guard_cert_path_args(text)
    assert out == expected
    assert templater.guard_cert_path_args(out) == expected


def test_volume_guards():
    text = (
        "        volumeMounts:\n"
        "        - mountPath: /tmp/k8s-webhook-server/serving-certs\n"
        "          name: webhook-certs\n"
        "          readOnly: true\n"
        "      volumes:\n"
        "      - name: webhook-certs\n"
        "        secret:\n"
        "          secretName: webhook-server-cert\n"
    )
    expected = (
        "        volumeMounts:\n"
        "        {{- if .Values.certManager.enable }}\n"
        "        - mountPath: /tmp/k8s-webhook-server/serving-certs\n"
        "          name: webhook-certs\n"
        "          readOnly: true\n"
        "        {{- end }}\n"
        "      volumes:\n"
        "      {{- if .Values.certManager.enable }}\n"
        "      - name: webhook-certs\n"
        "        secret:\n"
        "          secretName: webhook-server-cert\n"
        "      {{- end }}\n"
    )
    templater = DeploymentTemplater()
    out = templater.guard_volumes(text)
    assert out == expected
    assert templater.guard_volumes(out) == expected


ENV_BLOCK = (
    "          {{- if .Values.controllerManager.env }}\n"
    "          {{- toYaml .Values.controllerManager.env | nindent 10 }}\n"
    "          {{- else }}\n"
    "          []\n"
    "          {{- end }}\n"
)


def test_env_as_first_container_key():
    """
    DUPLICATE KEY TEST: A container opening with '- env:' already has an env
    block; it is replaced in place, never inserted a second time.
    """
    text = (
        "      containers:\n"
        "      - env:\n"
        "        - name: FOO\n"
        "          value: bar\n"
        "        image: x\n"
        "        name: manager\n"
    )
    expected = (
        "      containers:\n"
        "      - env:\n"
        + ENV_BLOCK
        + "        image: x\n"
        "        name: manager\n"
    )
    templater = DeploymentTemplater()
    out = templater.template_env(text)
    assert out == expected
    assert out.count("env:") == 1
    assert templater.template_env(out) == expected


def test_inline_env_is_replaced():
    text = (
        "      - name: manager\n"
        "        env: []\n"
        "        image: x\n"
    )
    expected = (
        "      - name: manager\n"
        "        env:\n"
        + ENV_BLOCK
        + "        image: x\n"
    )
    templater = DeploymentTemplater()
    out = templater.template_env(text)
    assert out == expected
    assert templater.template_env(out) == expected


def test_sidecar_before_manager_untouched():
    """
    SCOPE TEST: Only the container named 'manager' is rewritten, even when
    another container comes first.
    """
    text = (
        "      containers:\n"
        "      - image: busybox\n"
        "        name: sidecar\n"
        "        env:\n"
        "        - name: SIDE\n"
        "          value: car\n"
        "        resources: {}\n"
        "      - image: myproj/ctrl:v1\n"
        "        name: manager\n"
        "        resources:\n"
        "          limits:\n"
        "            cpu: 500m\n"
    )
    expected = (
        "      containers:\n"
        "      - image: busybox\n"
        "        name: sidecar\n"
        "        env:\n"
        "        - name: SIDE\n"
        "          value: car\n"
        "        resources: {}\n"
        '      - image: "{{ .Values.controllerManager.image.repository }}:{{ .Values.controllerManager.image.tag }}"\n'
        "        imagePullPolicy: {{ .Values.controllerManager.image.pullPolicy }}\n"
        "        name: manager\n"
        "        env:\n"
        + ENV_BLOCK
        + "        resources:\n"
        "          {{- if .Values.controllerManager.resources }}\n"
        "          {{- toYaml .Values.controllerManager.resources | nindent 10 }}\n"
        "          {{- else }}\n"
        "          {}\n"
        "          {{- end }}\n"
    )
    templater = DeploymentTemplater()
    out = templater.template_resources(templater.template_env(templater.template_image(text)))
    assert out == expected
